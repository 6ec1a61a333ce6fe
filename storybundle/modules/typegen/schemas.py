from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SpeakerType = Literal["character", "narrator", "system"]
AssetCompression = Literal["none", "gzip", "br"]


class BundleModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class StoryBundleMetadata(BundleModel):
    id: str
    name: str
    description: str | None = None
    author: str | None = None
    slug: str | None = None
    theme: str | None = None
    art_style_id: str | None = Field(default=None, alias="artStyleId")
    entry_card_id: str | None = Field(default=None, alias="entryCardId")
    card_count: int = Field(default=0, alias="cardCount")
    choice_count: int = Field(default=0, alias="choiceCount")
    character_count: int = Field(default=0, alias="characterCount")
    total_asset_size: int = Field(default=0, alias="totalAssetSize")
    estimated_playtime: int | float | None = Field(default=None, alias="estimatedPlaytime")


class SerializedStack(BundleModel):
    id: str
    name: str
    description: str | None = None
    first_card_id: str | None = Field(default=None, alias="firstCardId")
    art_style_id: str | None = Field(default=None, alias="artStyleId")
    custom_art_style_prompt: str | None = Field(default=None, alias="customArtStylePrompt")
    preview_theme: str | None = Field(default=None, alias="previewTheme")


class SerializedCard(BundleModel):
    id: str
    title: str = ""
    content: str = ""
    script: str | None = ""
    image_ref: str | None = Field(default=None, alias="imageRef")
    message: str | None = None
    speaker: str | None = None
    speaker_type: SpeakerType | None = Field(default=None, alias="speakerType")
    order_index: int = Field(default=0, alias="orderIndex")


class SerializedChoice(BundleModel):
    id: str
    card_id: str = Field(alias="cardId")
    label: str = ""
    target_id: str = Field(alias="targetId")
    order_index: int = Field(default=0, alias="orderIndex")


class SerializedCharacter(BundleModel):
    id: str
    name: str = ""
    appearance: str = ""
    image_refs: list[str] = Field(default_factory=list, alias="imageRefs")
    avatar_ref: str | None = Field(default=None, alias="avatarRef")
    order_index: int = Field(default=0, alias="orderIndex")


class NavigationNode(BundleModel):
    card_id: str = Field(alias="cardId")
    out_edges: list[str] = Field(default_factory=list, alias="outEdges")
    in_edges: list[str] = Field(default_factory=list, alias="inEdges")
    is_dead_end: bool = Field(default=False, alias="isDeadEnd")
    is_orphan: bool = Field(default=False, alias="isOrphan")
    depth: int = 0


class NavigationEdge(BundleModel):
    id: str = ""
    source_card_id: str = Field(alias="sourceCardId")
    target_card_id: str = Field(alias="targetCardId")
    choice_id: str = Field(default="", alias="choiceId")
    label: str = ""


class NavigationGraph(BundleModel):
    # Key order of `nodes` is preserved from the source JSON and drives the adjacency view.
    nodes: dict[str, NavigationNode] = Field(default_factory=dict)
    edges: list[NavigationEdge] = Field(default_factory=list)
    entry_node_id: str | None = Field(default=None, alias="entryNodeId")
    dead_ends: list[str] = Field(default_factory=list, alias="deadEnds")
    orphans: list[str] = Field(default_factory=list)


class SerializedStoryData(BundleModel):
    stack: SerializedStack | None = None
    cards: list[SerializedCard] = Field(default_factory=list)
    choices: list[SerializedChoice] = Field(default_factory=list)
    characters: list[SerializedCharacter] = Field(default_factory=list)
    navigation: NavigationGraph = Field(default_factory=NavigationGraph)


class AssetEntry(BundleModel):
    id: str
    url: str = ""
    data_uri: str | None = Field(default=None, alias="dataUri")
    mime_type: str = Field(default="", alias="mimeType")
    size: int = 0
    width: int | None = None
    height: int | None = None
    is_embedded: bool = Field(default=False, alias="isEmbedded")


class AssetManifest(BundleModel):
    images: list[AssetEntry] = Field(default_factory=list)
    total_size: int = Field(default=0, alias="totalSize")
    compression: AssetCompression = "none"


class CompiledStoryBundle(BundleModel):
    version: str = Field(min_length=1)
    compiled_at: str | None = Field(default=None, alias="compiledAt")
    checksum: str = ""
    metadata: StoryBundleMetadata
    data: SerializedStoryData
    assets: AssetManifest = Field(default_factory=AssetManifest)


@dataclass(frozen=True, slots=True)
class GenerationOptions:
    include_comments: bool = True
    strict_card_ids: bool = True
    strict_choice_ids: bool = True
    strict_character_ids: bool = True
    infer_variable_types: bool = True
    infer_flag_types: bool = True


@dataclass(slots=True)
class TypeGenerationStats:
    card_id_count: int
    choice_id_count: int
    character_id_count: int
    variable_count: int
    flag_count: int
    generated_at: str


@dataclass(slots=True)
class TypeGenerationResult:
    content: str
    filename: str
    stats: TypeGenerationStats
