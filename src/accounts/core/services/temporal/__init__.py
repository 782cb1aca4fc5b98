from .temporal_client import TemporalClientService

__all__ = ["TemporalClientService"]
