"""
Procurement Configuration Schema.

Defines the structure and defaults for requisition and purchase order
settings.  Deployments override them through ``supply_config``.
"""

from dataclasses import dataclass

from supply_kernel.domain.identity import Role


@dataclass(frozen=True)
class ProcurementConfig:
    """
    Configuration schema for the procurement module.

        config = ProcurementConfig(
            po_prefix="PO",
            min_rejection_reason_length=10,
        )
    """

    # Document numbering
    pr_prefix: str = "PR"
    po_prefix: str = "PO"

    # Approval
    min_rejection_reason_length: int = 10
    approver_roles: tuple[str, ...] = (Role.MANAGER.value, Role.ADMIN.value)

    # Stored on lines that needed no justification and were given none
    default_justification: str = "Stock below reorder point"

    def __post_init__(self):
        if not self.pr_prefix or not self.po_prefix:
            raise ValueError("Document prefixes must be non-empty")
        if self.pr_prefix == self.po_prefix:
            raise ValueError("PR and PO prefixes must differ")
        if self.min_rejection_reason_length < 0:
            raise ValueError("min_rejection_reason_length cannot be negative")
        if not self.approver_roles:
            raise ValueError("approver_roles must name at least one role")
