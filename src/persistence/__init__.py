"""Blueprint persistence -- storage gateway and debounced autosave."""
from src.persistence.autosave import DebouncedAutosaver
from src.persistence.gateway import BlueprintGateway, JsonFileGateway

__all__ = [
    "BlueprintGateway",
    "DebouncedAutosaver",
    "JsonFileGateway",
]
