"""Interface protocols for SubMiner."""

from .field_grouping import FieldGroupingCallback
from .media_generator import MediaGeneratorProtocol
from .presenter import PresenterProtocol

__all__ = ["FieldGroupingCallback", "MediaGeneratorProtocol", "PresenterProtocol"]
