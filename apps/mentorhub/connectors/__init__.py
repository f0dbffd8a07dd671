from .seatable_connector import SeaTableConnector

__all__ = ["SeaTableConnector"]
