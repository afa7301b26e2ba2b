from .edit_buffer import ChangeKind, EditBuffer, PlannedStatement, TableContext, apply_plan

__all__ = ["ChangeKind", "EditBuffer", "PlannedStatement", "TableContext", "apply_plan"]
