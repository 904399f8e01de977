from sqlob.request.base import Request
from sqlob.request.create import CreateRequest
from sqlob.request.delete import DeleteRequest
from sqlob.request.insert import InsertRequest
from sqlob.request.select import CountRequest, SelectRequest
from sqlob.request.update import UpdateRequest

__all__ = [
    'Request',
    'CountRequest',
    'CreateRequest',
    'DeleteRequest',
    'InsertRequest',
    'SelectRequest',
    'UpdateRequest',
]
