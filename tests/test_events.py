"""Toast queue and event delivery."""

from lifesync.events import TOAST, Notifier


def test_toasts_are_capped_oldest_first():
    notifier = Notifier(max_toasts=2)
    for n in range(3):
        notifier.toast(f"toast {n}")

    assert [t.message for t in notifier.drain()] == ["toast 1", "toast 2"]
    assert notifier.drain() == []


def test_zero_capacity_keeps_nothing_but_still_emits():
    notifier = Notifier(max_toasts=0)
    seen = []
    notifier.subscribe(TOAST, lambda toast: seen.append(toast.message))

    notifier.toast("hello")

    assert notifier.drain() == []
    assert seen == ["hello"]


def test_failing_handler_does_not_stop_others():
    notifier = Notifier()
    seen = []

    def broken(toast):
        raise RuntimeError("boom")

    notifier.subscribe(TOAST, broken)
    notifier.subscribe(TOAST, lambda toast: seen.append(toast.kind))

    notifier.toast("saved", "success")

    assert seen == ["success"]
