"""
Domain exceptions raised by the service layer.

Routes translate these into HTTP responses; services never raise HTTPException.
"""


class QuotaExceeded(Exception):
    """Admission check denied creation of a quota-limited resource."""

    def __init__(self, resource_type: str, limit: int, used: int):
        self.resource_type = resource_type
        self.limit = limit
        self.used = used
        super().__init__(
            f"Monthly {resource_type} limit reached ({used}/{limit})"
        )


class ResourceNotFound(Exception):
    """Resource does not exist or does not belong to the user."""

    def __init__(self, resource_type: str, resource_id: int):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} {resource_id} not found")
