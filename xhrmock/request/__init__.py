from .mock_request import MockXhrRequest
from .request_data import RequestData

__all__ = ['MockXhrRequest', 'RequestData']
