"""
Reorder Configuration Schema.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ReorderConfig:
    """
    Attributes:
        auto_resolve_recovered: mark an item's unread reorder alerts read
            once its stock is back above the reorder point.
        notify_assignee: send a reorder notification to the assignee when
            an evaluation creates alerts.
    """

    auto_resolve_recovered: bool = True
    notify_assignee: bool = True
