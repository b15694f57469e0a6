from .json_store import JsonRecordStore

__all__ = ["JsonRecordStore"]
