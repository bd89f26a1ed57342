import dataclasses
import json
import typing
from typing import List, Optional


# ==============================================================================
#  Base Message class
# ==============================================================================

@dataclasses.dataclass
class Message:
    """Base for all protocol models. Provides dict/JSON round-trip."""

    @classmethod
    def model_validate(cls, data: dict):
        """Construct from dict, hydrating nested Message fields and ignoring unknown keys."""
        if not isinstance(data, dict):
            raise TypeError(f"{cls.__name__} expects a dict, got {type(data).__name__}")
        hints = typing.get_type_hints(cls)
        kwargs = {}
        for f in dataclasses.fields(cls):
            if f.name not in data:
                continue
            val = data[f.name]
            hint = hints.get(f.name)
            # List[MessageSubclass]
            if getattr(hint, '__origin__', None) is list and val:
                inner = getattr(hint, '__args__', (None,))[0]
                if inner and isinstance(inner, type) and issubclass(inner, Message):
                    val = [inner.model_validate(v) if isinstance(v, dict) else v for v in val]
            kwargs[f.name] = val
        return cls(**kwargs)

    def model_dump(self) -> dict:
        return dataclasses.asdict(self)

    def model_dump_json(self) -> str:
        return json.dumps(self.model_dump())


# ==============================================================================
#  Base Models
# ==============================================================================

@dataclasses.dataclass
class Request(Message):
    """Base model for all client-to-daemon requests."""
    command: str = ""
    session_id: Optional[str] = None

@dataclasses.dataclass
class Response(Message):
    """Base model for all daemon-to-client responses."""
    status: str = "success"
    message: Optional[str] = None

@dataclasses.dataclass
class ErrorResponse(Response):
    """Standardized error response."""
    status: str = "error"
    message: str = ""

@dataclasses.dataclass
class ImageInfo(Message):
    """One image as reported by the daemon's folder scan."""
    id: str = ""
    path: str = ""
    name: str = ""
    tags: List[str] = dataclasses.field(default_factory=list)
    description: str = ""

# ==============================================================================
#  Request/Response Models
# ==============================================================================

# --- Scan Folder ---
@dataclasses.dataclass
class ScanFolderRequest(Request):
    command: str = "scan_folder"
    folder_path: str = ""

@dataclasses.dataclass
class ScanFolderResponse(Response):
    images: List[ImageInfo] = dataclasses.field(default_factory=list)

# --- Generate Tags ---
@dataclasses.dataclass
class GenerateTagsRequest(Request):
    command: str = "generate_tags"
    image_path: str = ""

@dataclasses.dataclass
class GenerateTagsResponse(Response):
    tags: List[str] = dataclasses.field(default_factory=list)

# --- Check Inference ---
@dataclasses.dataclass
class CheckInferenceRequest(Request):
    command: str = "check_inference"

@dataclasses.dataclass
class CheckInferenceResponse(Response):
    available: bool = False
