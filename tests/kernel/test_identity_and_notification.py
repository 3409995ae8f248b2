"""
Tests for role checks and best-effort notification delivery.
"""

from uuid import uuid4

import pytest

from supply_kernel.domain.identity import (
    ActorContext,
    Role,
    check_role,
    require_role,
)
from supply_kernel.exceptions import InsufficientRoleError
from supply_kernel.services.notification import Notification, send_best_effort


class TestRoles:
    def test_manager_and_admin_are_elevated(self):
        assert ActorContext.of(uuid4(), Role.MANAGER).is_elevated
        assert ActorContext.of(uuid4(), "Admin").is_elevated
        assert not ActorContext.of(uuid4(), Role.PURCHASER).is_elevated

    def test_check_role_reports_reason(self):
        allowed, reason = check_role(ActorContext.of(uuid4(), Role.VIEWER), "approve_requisition")
        assert not allowed
        assert "approve_requisition" in reason

    def test_require_role_raises_with_context(self):
        actor = ActorContext.of(uuid4(), Role.STOREKEEPER)
        with pytest.raises(InsufficientRoleError) as exc_info:
            require_role(actor, "reject_requisition")
        assert exc_info.value.code == "INSUFFICIENT_ROLE"
        assert exc_info.value.actual_roles == ("Storekeeper",)
        assert exc_info.value.required_roles == ("Admin", "Manager")

    def test_custom_required_roles(self):
        actor = ActorContext.of(uuid4(), Role.PURCHASER)
        require_role(actor, "convert", required_roles=("Purchaser",))


class TestSendBestEffort:
    def _notification(self, recipient="someone@example.com"):
        return Notification(kind="po_created", recipient=recipient, subject="s", body="b")

    def test_delivers(self, notifier):
        sender = notifier
        assert send_best_effort(sender, self._notification()) is True
        assert sender.kinds() == ["po_created"]

    def test_sender_failure_is_swallowed(self, notifier):
        notifier.fail = True
        sender = notifier
        assert send_best_effort(sender, self._notification()) is False

    def test_no_sender_or_recipient_skips(self, notifier):
        sender = notifier
        assert send_best_effort(None, self._notification()) is False
        assert send_best_effort(sender, self._notification(recipient="")) is False
        assert sender.sent == []
