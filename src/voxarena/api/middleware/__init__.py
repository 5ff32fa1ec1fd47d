"""VoxArena API middleware package."""

from voxarena.api.middleware.db_tx import DBTransactionMiddleware
from voxarena.api.middleware.request_id import RequestIdMiddleware

__all__ = ["DBTransactionMiddleware", "RequestIdMiddleware"]
