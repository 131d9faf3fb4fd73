from .data_writer import DataWriter

__all__ = ["DataWriter"]
