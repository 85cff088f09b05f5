"""Core data models shared across cmsmark components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Prop alias value meaning "every prop not destructured by name" (``...rest``).
REST_PROPS = "..."


def build_definition_path(name: str, parent_path: Optional[str]) -> str:
    """Join a key onto its parent path, using ``[n]`` for array indices."""
    if not parent_path:
        return name
    if name.isdigit():
        return f"{parent_path}[{name}]"
    return f"{parent_path}.{name}"


@dataclass(frozen=True)
class VariableDefinition:
    """A string value declared in a template preamble or script module."""

    name: str
    value: str
    line: int
    parent_path: Optional[str] = None

    @property
    def path(self) -> str:
        """Full dotted/indexed path used by expressions (``nav.items[0].label``)."""
        return build_definition_path(self.name, self.parent_path)


@dataclass(frozen=True)
class ImportInfo:
    """One imported binding; ``imported_name`` is ``default`` or ``*`` for those forms."""

    local_name: str
    imported_name: str
    source: str


@dataclass
class SourceLocation:
    """Where a rendered value originates."""

    file: str
    line: int
    snippet: Optional[str] = None
    type: str = "static"
    variable_name: Optional[str] = None
    definition_line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"file": self.file, "line": self.line, "type": self.type}
        if self.snippet is not None:
            data["snippet"] = self.snippet
        if self.variable_name is not None:
            data["variableName"] = self.variable_name
        if self.definition_line is not None:
            data["definitionLine"] = self.definition_line
        return data


@dataclass
class SearchIndexEntry:
    """Flat index record mapping normalized text (and tag) to a source location."""

    file: str
    line: int
    snippet: str
    type: str
    normalized_text: str
    tag: str
    variable_name: Optional[str] = None
    definition_line: Optional[int] = None

    def to_location(self) -> SourceLocation:
        return SourceLocation(
            file=self.file,
            line=self.line,
            snippet=self.snippet,
            type=self.type,
            variable_name=self.variable_name,
            definition_line=self.definition_line,
        )


@dataclass
class ImageIndexEntry:
    """Image ``src`` occurrence in a template file."""

    file: str
    line: int
    snippet: str
    src: str


@dataclass
class ImageMetadata:
    src: str
    alt: str = ""
    srcset: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"src": self.src, "alt": self.alt}
        if self.srcset:
            data["srcSet"] = self.srcset
        return data


@dataclass
class BackgroundImageMetadata:
    bg_image_class: str
    image_url: str
    bg_size: Optional[str] = None
    bg_position: Optional[str] = None
    bg_repeat: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"bgImageClass": self.bg_image_class, "imageUrl": self.image_url}
        if self.bg_size:
            data["bgSize"] = self.bg_size
        if self.bg_position:
            data["bgPosition"] = self.bg_position
        if self.bg_repeat:
            data["bgRepeat"] = self.bg_repeat
        return data


@dataclass
class ManifestEntry:
    """An editable region of a rendered page."""

    id: str
    tag: str
    text: str
    file: Optional[str] = None
    source_path: Optional[str] = None
    source_line: Optional[int] = None
    source_type: str = "static"
    variable_name: Optional[str] = None
    child_cms_ids: List[str] = field(default_factory=list)
    parent_component_id: Optional[str] = None
    collection_name: Optional[str] = None
    collection_slug: Optional[str] = None
    content_path: Optional[str] = None
    stable_id: Optional[str] = None
    source_snippet: Optional[str] = None
    source_hash: Optional[str] = None
    image: Optional[ImageMetadata] = None
    background_image: Optional[BackgroundImageMetadata] = None
    html: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "tag": self.tag,
            "text": self.text,
            "sourceType": self.source_type,
        }
        optional = {
            "file": self.file,
            "sourcePath": self.source_path,
            "sourceLine": self.source_line,
            "variableName": self.variable_name,
            "parentComponentId": self.parent_component_id,
            "collectionName": self.collection_name,
            "collectionSlug": self.collection_slug,
            "contentPath": self.content_path,
            "stableId": self.stable_id,
            "sourceSnippet": self.source_snippet,
            "sourceHash": self.source_hash,
            "html": self.html,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        if self.child_cms_ids:
            data["childCmsIds"] = list(self.child_cms_ids)
        if self.image is not None:
            data["imageMetadata"] = self.image.to_dict()
        if self.background_image is not None:
            data["backgroundImage"] = self.background_image.to_dict()
        return data


@dataclass
class ComponentInstance:
    """One rendered occurrence of a component template."""

    id: str
    component_name: str
    file: str
    source_path: str
    source_line: int
    props: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "componentName": self.component_name,
            "file": self.file,
            "sourcePath": self.source_path,
            "sourceLine": self.source_line,
            "props": dict(self.props),
        }


@dataclass
class ComponentProp:
    name: str
    type: str
    required: bool
    default_value: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "type": self.type, "required": self.required}
        if self.default_value is not None:
            data["defaultValue"] = self.default_value
        if self.description:
            data["description"] = self.description
        return data


@dataclass
class ComponentDefinition:
    """Static description of a component template found in a component directory."""

    name: str
    file: str
    props: List[ComponentProp] = field(default_factory=list)
    slots: List[str] = field(default_factory=list)
    description: Optional[str] = None
    preview_width: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "file": self.file,
            "props": [prop.to_dict() for prop in self.props],
        }
        if self.slots:
            data["slots"] = list(self.slots)
        if self.description:
            data["description"] = self.description
        if self.preview_width is not None:
            data["previewWidth"] = self.preview_width
        return data


@dataclass
class FrontmatterField:
    value: str
    line: int

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "line": self.line}


@dataclass
class CollectionEntry:
    """A content collection page: the markdown file behind it and its rendered wrapper."""

    collection_name: str
    collection_slug: str
    source_path: str
    frontmatter: Dict[str, FrontmatterField] = field(default_factory=dict)
    body: str = ""
    body_start_line: int = 1
    wrapper_id: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.collection_name}/{self.collection_slug}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "collectionName": self.collection_name,
            "collectionSlug": self.collection_slug,
            "sourcePath": self.source_path,
            "frontmatter": {key: item.to_dict() for key, item in self.frontmatter.items()},
            "body": self.body,
            "bodyStartLine": self.body_start_line,
        }
        if self.wrapper_id is not None:
            data["wrapperId"] = self.wrapper_id
        return data


__all__ = [
    "REST_PROPS",
    "BackgroundImageMetadata",
    "CollectionEntry",
    "ComponentDefinition",
    "ComponentInstance",
    "ComponentProp",
    "FrontmatterField",
    "ImageIndexEntry",
    "ImageMetadata",
    "ImportInfo",
    "ManifestEntry",
    "SearchIndexEntry",
    "SourceLocation",
    "VariableDefinition",
    "build_definition_path",
]
