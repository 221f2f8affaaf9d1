class ReportError(Exception):
    """Base class for errors raised while building a target report."""


class TargetNotFoundError(ReportError):
    def __init__(self, group_id: int, target_id: int):
        super().__init__(f"Target {target_id} not found in group {group_id}")
        self.group_id = group_id
        self.target_id = target_id
