from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple


@dataclass(frozen=True)
class ImageRecord:
    """One scanned image. Only ``tags`` and ``description`` change after creation."""
    id: str
    source_path: str
    display_ref: str
    name: str
    tags: Tuple[str, ...] = ()
    description: str = ""

    def with_tags(self, tags: Iterable[str]) -> "ImageRecord":
        return replace(self, tags=tuple(tags))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source_path": self.source_path,
            "display_ref": self.display_ref,
            "name": self.name,
            "tags": list(self.tags),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageRecord":
        return cls(
            id=data["id"],
            source_path=data["source_path"],
            display_ref=data["display_ref"],
            name=data["name"],
            tags=tuple(data.get("tags", ())),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class TagRequest:
    """Identifies the image a tagging request was issued for."""
    image_id: str
    source_path: str
    scan_generation: int


@dataclass(frozen=True)
class SessionState:
    """The whole gallery session as one immutable value.

    ``loaded`` holds ``(image_id, scan_generation)`` pairs; pairs from an older
    generation are never read as loaded. ``latest_scan_ticket`` numbers the
    newest scan request, ``overlay_epoch`` the currently armed overlay timer.
    ``inference_available`` is the last answer from the tagging backend.
    """
    images: Tuple[ImageRecord, ...] = ()
    search_query: str = ""
    selected_id: Optional[str] = None
    scan_generation: int = 0
    loaded: FrozenSet[Tuple[str, int]] = field(default_factory=frozenset)
    scanning: bool = False
    generating_tags: bool = False
    overlay_visible: bool = False
    latest_scan_ticket: int = 0
    overlay_epoch: int = 0
    tag_request: Optional[TagRequest] = None
    inference_available: bool = True

    def find_image(self, image_id: Optional[str]) -> Optional[ImageRecord]:
        if image_id is None:
            return None
        for record in self.images:
            if record.id == image_id:
                return record
        return None

    def to_dict(self) -> Dict[str, Any]:
        request = self.tag_request
        return {
            "images": [record.to_dict() for record in self.images],
            "search_query": self.search_query,
            "selected_id": self.selected_id,
            "scan_generation": self.scan_generation,
            "loaded": sorted([image_id, generation] for image_id, generation in self.loaded),
            "scanning": self.scanning,
            "generating_tags": self.generating_tags,
            "overlay_visible": self.overlay_visible,
            "latest_scan_ticket": self.latest_scan_ticket,
            "overlay_epoch": self.overlay_epoch,
            "tag_request": None if request is None else {
                "image_id": request.image_id,
                "source_path": request.source_path,
                "scan_generation": request.scan_generation,
            },
            "inference_available": self.inference_available,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionState":
        request = data.get("tag_request")
        return cls(
            images=tuple(ImageRecord.from_dict(d) for d in data.get("images", [])),
            search_query=data.get("search_query", ""),
            selected_id=data.get("selected_id"),
            scan_generation=data.get("scan_generation", 0),
            loaded=frozenset((image_id, generation) for image_id, generation in data.get("loaded", [])),
            scanning=data.get("scanning", False),
            generating_tags=data.get("generating_tags", False),
            overlay_visible=data.get("overlay_visible", False),
            latest_scan_ticket=data.get("latest_scan_ticket", 0),
            overlay_epoch=data.get("overlay_epoch", 0),
            tag_request=None if request is None else TagRequest(**request),
            inference_available=data.get("inference_available", True),
        )
