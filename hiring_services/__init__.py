"""
hiring_services -- request/response command gateway.

Responsibility:
    The outer surface of the hiring workflow.  ``HiringGateway`` turns each
    UI command into one transaction over the kernel and returns a
    ``CommandResult`` envelope.

Architecture position:
    Services -- dependency direction is one way:
        hiring_services/ -> hiring_config/  (allowed)
        hiring_services/ -> hiring_kernel/  (allowed)
        hiring_kernel/   -> hiring_services/ (FORBIDDEN)
"""

from hiring_services.gateway import HTTP_STATUS_BY_CATEGORY, CommandResult, HiringGateway
from hiring_services.serializers import to_jsonable

__all__ = [
    "CommandResult",
    "HTTP_STATUS_BY_CATEGORY",
    "HiringGateway",
    "to_jsonable",
]
