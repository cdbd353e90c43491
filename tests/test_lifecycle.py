import pytest

from eventix.lifecycle import LifecycleStatus, can_reschedule, is_active


class TestIsActive:

    @pytest.mark.parametrize("status, expected", [
        (LifecycleStatus.CONFIRMED, True),
        (LifecycleStatus.TENTATIVE, True),
        (LifecycleStatus.BLOCKED, True),
        (LifecycleStatus.CANCELLED, False),
    ])
    def test_default(self, status, expected):
        assert is_active(status) is expected
        assert status.is_active is expected

    def test_tentative_can_be_treated_as_free(self):
        assert not is_active(LifecycleStatus.TENTATIVE, include_tentative=False)
        assert is_active(LifecycleStatus.CONFIRMED, include_tentative=False)
        assert is_active(LifecycleStatus.BLOCKED, include_tentative=False)
        assert not is_active(LifecycleStatus.CANCELLED, include_tentative=False)


class TestParse:

    @pytest.mark.parametrize("value", ["blocked", "BLOCKED", " Blocked ", LifecycleStatus.BLOCKED])
    def test_accepts_names(self, value):
        assert LifecycleStatus.parse(value) is LifecycleStatus.BLOCKED

    @pytest.mark.parametrize("value", ["done", "", None, 3])
    def test_rejects_unknown(self, value):
        with pytest.raises(ValueError):
            LifecycleStatus.parse(value)


def test_only_blocked_cannot_be_rescheduled():
    assert [s for s in LifecycleStatus if not can_reschedule(s)] == [LifecycleStatus.BLOCKED]
