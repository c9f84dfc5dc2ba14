from judging_node.db.tables.judging import JudgeAssignedItemRow, JudgeRow, WorkItemRow
from judging_node.db.tables.runs import AssignmentRunRow

__all__ = [
    "JudgeRow", "JudgeAssignedItemRow", "WorkItemRow",
    "AssignmentRunRow",
]
