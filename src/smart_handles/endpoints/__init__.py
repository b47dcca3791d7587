"""
Endpoints.

Each endpoint builds one unsigned transaction and returns it in a ``Result``.
"""

from smart_handles.endpoints.fetch import fetch_batch_requests, fetch_single_requests
from smart_handles.endpoints.reclaim import batch_reclaim, single_reclaim
from smart_handles.endpoints.request import batch_request, single_request
from smart_handles.endpoints.route import batch_route, single_route

__all__ = [
    "single_request",
    "batch_request",
    "single_reclaim",
    "batch_reclaim",
    "single_route",
    "batch_route",
    "fetch_single_requests",
    "fetch_batch_requests",
]
