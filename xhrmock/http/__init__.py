from .headers import HeadersContainer

__all__ = ['HeadersContainer']
