from .container import Container, close_container, get_container

__all__ = ["Container", "get_container", "close_container"]
