from __future__ import annotations

import re
from datetime import datetime

from storybundle.modules.typegen.schemas import (
    CompiledStoryBundle,
    GenerationOptions,
    NavigationGraph,
    SerializedCard,
    SerializedCharacter,
    SerializedChoice,
    StoryBundleMetadata,
    TypeGenerationResult,
    TypeGenerationStats,
)
from storybundle.modules.typegen.usage import (
    TypeTag,
    collect_flag_usage,
    collect_variable_usage,
    render_type_union,
)
from storybundle.utils.time import iso_timestamp_ms, utc_now_aware

DEFAULT_DECLARATION_EXTENSION = "d.ts"
_SLUG_RE = re.compile(r"[^a-z0-9]+")


def escape_string_literal(value: str) -> str:
    # Backslash first so the escapes added by later steps are not doubled.
    return (
        str(value)
        .replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def _quoted(value: str) -> str:
    return f"'{escape_string_literal(value)}'"


def _quoted_or_null(value: str | None) -> str:
    return _quoted(value) if value else "null"


def _header_value(value: object) -> str:
    return " ".join(str(value or "").split())


def bundle_slug(name: str) -> str:
    text = str(name or "").lower()
    return _SLUG_RE.sub("-", text).strip("-")


def bundle_output_filename(bundle: CompiledStoryBundle, extension: str = DEFAULT_DECLARATION_EXTENSION) -> str:
    slug = bundle_slug(bundle.metadata.name) or bundle_slug(bundle.metadata.id) or "bundle"
    return f"{slug}.bundle.{extension.lstrip('.')}"


def _doc(lines: list[str], options: GenerationOptions, *text: str) -> None:
    if not options.include_comments:
        return
    lines.append("/**")
    lines.extend(f" * {item}" for item in text)
    lines.append(" */")


def _literal_union(name: str, members: list[str], *, fallback: str) -> str:
    if not members:
        return f"export type {name} = {fallback}"
    body = "\n".join(f"  | {_quoted(member)}" for member in members)
    return f"export type {name} =\n{body}"


def _lookup_interface(name: str, pairs: list[tuple[str, str]]) -> list[str]:
    lines = [f"export interface {name} {{"]
    for key, value in pairs:
        lines.append(f"  readonly {_quoted(key)}: {_quoted(value)}")
    lines.append("}")
    return lines


def render_header(bundle: CompiledStoryBundle, generated_at: str) -> list[str]:
    return [
        "// Auto-generated TypeScript definitions for story bundle",
        f"// Generated from: {_header_value(bundle.metadata.name)}",
        f"// Generated at: {generated_at}",
        f"// Bundle version: {_header_value(bundle.version)}",
        f"// Checksum: {_header_value(bundle.checksum)}",
        "",
        "/* eslint-disable @typescript-eslint/no-empty-object-type */",
        "",
    ]


def render_card_types(cards: list[SerializedCard], options: GenerationOptions) -> list[str]:
    lines: list[str] = []
    _doc(lines, options, "Union type of all valid card IDs in this bundle")
    ids = [card.id for card in cards] if options.strict_card_ids else []
    lines.append(_literal_union("CardId", ids, fallback="string"))
    lines.append("")

    _doc(lines, options, "Map of card IDs to their titles for reference")
    lines.extend(_lookup_interface("CardTitleMap", [(card.id, card.title) for card in cards]))
    lines.append("")
    return lines


def render_choice_types(choices: list[SerializedChoice], options: GenerationOptions) -> list[str]:
    lines: list[str] = []
    _doc(lines, options, "Union type of all valid choice IDs in this bundle")
    ids = [choice.id for choice in choices] if options.strict_choice_ids else []
    lines.append(_literal_union("ChoiceId", ids, fallback="string"))
    lines.append("")

    _doc(lines, options, "Map of choice IDs to their source card IDs")
    lines.extend(_lookup_interface("ChoiceSourceMap", [(choice.id, choice.card_id) for choice in choices]))
    lines.append("")

    _doc(lines, options, "Map of choice IDs to their target card IDs")
    lines.extend(_lookup_interface("ChoiceTargetMap", [(choice.id, choice.target_id) for choice in choices]))
    lines.append("")
    return lines


def render_character_types(characters: list[SerializedCharacter], options: GenerationOptions) -> list[str]:
    lines: list[str] = []
    _doc(lines, options, "Union type of all valid character IDs in this bundle")
    ids = [character.id for character in characters] if options.strict_character_ids else []
    lines.append(_literal_union("CharacterId", ids, fallback="string"))
    lines.append("")

    _doc(lines, options, "Map of character IDs to their names")
    lines.extend(
        _lookup_interface("CharacterNameMap", [(character.id, character.name) for character in characters])
    )
    lines.append("")
    return lines


def render_variable_types(variables: dict[str, list[TypeTag]] | None, options: GenerationOptions) -> list[str]:
    """`variables=None` means inference is switched off and both declarations stay unconstrained."""
    lines: list[str] = []
    _doc(lines, options, "Typed story variables inferred from script usage")
    if variables is None:
        lines.append("export type StoryVariables = Record<string, unknown>")
    elif variables:
        lines.append("export interface StoryVariables {")
        for name, tags in variables.items():
            lines.append(f"  {_quoted(name)}?: {render_type_union(tags)}")
        lines.append("}")
    else:
        lines.append("export interface StoryVariables {}")
    lines.append("")

    _doc(lines, options, "Union of all known variable names")
    if variables is None:
        lines.append("export type VariableName = string")
    else:
        lines.append(_literal_union("VariableName", list(variables), fallback="never"))
    lines.append("")
    return lines


def render_flag_types(flags: list[str] | None, options: GenerationOptions) -> list[str]:
    lines: list[str] = []
    _doc(lines, options, "Union of all known story flags inferred from script usage")
    if flags is None:
        lines.append("export type StoryFlag = string")
    else:
        lines.append(_literal_union("StoryFlag", flags, fallback="never"))
    lines.append("")
    return lines


def _readonly_sequence(values: list[str]) -> str:
    if not values:
        return "readonly []"
    return f"ReadonlyArray<{' | '.join(_quoted(value) for value in values)}>"


def render_navigation_types(nav: NavigationGraph, options: GenerationOptions) -> list[str]:
    lines: list[str] = []
    _doc(lines, options, "Pre-computed navigation graph structure")
    lines.append("export interface TypedNavigationGraph {")
    lines.append(f"  readonly entryNodeId: {_quoted_or_null(nav.entry_node_id)}")
    lines.append(f"  readonly deadEnds: {_readonly_sequence(nav.dead_ends)}")
    lines.append(f"  readonly orphans: {_readonly_sequence(nav.orphans)}")
    lines.append("}")
    lines.append("")

    _doc(lines, options, "Map of card IDs to their outgoing choice targets")
    lines.append("export interface NavigationAdjacencyMap {")
    for card_id in nav.nodes:
        targets = [_quoted(edge.target_card_id) for edge in nav.edges if edge.source_card_id == card_id]
        lines.append(f"  readonly {_quoted(card_id)}: readonly [{', '.join(targets)}]")
    lines.append("}")
    lines.append("")
    return lines


def render_metadata_type(metadata: StoryBundleMetadata, options: GenerationOptions) -> list[str]:
    lines: list[str] = []
    _doc(lines, options, "Compile-time bundle metadata")
    lines.extend(
        [
            "export interface TypedBundleMetadata {",
            f"  readonly id: {_quoted(metadata.id)}",
            f"  readonly name: {_quoted(metadata.name)}",
            f"  readonly description: {_quoted_or_null(metadata.description)}",
            f"  readonly author: {_quoted_or_null(metadata.author)}",
            f"  readonly slug: {_quoted_or_null(metadata.slug)}",
            f"  readonly theme: {_quoted_or_null(metadata.theme)}",
            f"  readonly entryCardId: {_quoted_or_null(metadata.entry_card_id)}",
            f"  readonly cardCount: {int(metadata.card_count)}",
            f"  readonly choiceCount: {int(metadata.choice_count)}",
            f"  readonly characterCount: {int(metadata.character_count)}",
            "}",
            "",
        ]
    )
    return lines


def render_entity_interfaces(bundle: CompiledStoryBundle, options: GenerationOptions) -> list[str]:
    lines: list[str] = []
    _doc(
        lines,
        options,
        "Fully-typed story bundle interface",
        "Use this type for compile-time safety when accessing bundle data",
    )
    lines.extend(
        [
            "export interface TypedStoryBundle {",
            f"  readonly version: {_quoted(bundle.version)}",
            f"  readonly checksum: {_quoted(bundle.checksum)}",
            "  readonly metadata: TypedBundleMetadata",
            "  readonly data: {",
            "    readonly cards: ReadonlyArray<TypedCard>",
            "    readonly choices: ReadonlyArray<TypedChoice>",
            "    readonly characters: ReadonlyArray<TypedCharacter>",
            "    readonly navigation: TypedNavigationGraph",
            "  }",
            "}",
            "",
        ]
    )

    _doc(lines, options, "Typed card with strict ID")
    lines.extend(
        [
            "export interface TypedCard {",
            "  readonly id: CardId",
            "  readonly title: string",
            "  readonly content: string",
            "  readonly script: string",
            "  readonly imageRef: string | null",
            "  readonly message: string | null",
            "  readonly speaker: string | null",
            "  readonly speakerType: 'character' | 'narrator' | 'system' | null",
            "  readonly orderIndex: number",
            "}",
            "",
        ]
    )

    _doc(lines, options, "Typed choice with strict IDs")
    lines.extend(
        [
            "export interface TypedChoice {",
            "  readonly id: ChoiceId",
            "  readonly cardId: CardId",
            "  readonly label: string",
            "  readonly targetId: CardId",
            "  readonly orderIndex: number",
            "}",
            "",
        ]
    )

    _doc(lines, options, "Typed character with strict ID")
    lines.extend(
        [
            "export interface TypedCharacter {",
            "  readonly id: CharacterId",
            "  readonly name: string",
            "  readonly appearance: string",
            "  readonly imageRefs: readonly string[]",
            "  readonly avatarRef: string | null",
            "  readonly orderIndex: number",
            "}",
            "",
        ]
    )
    return lines


def render_runtime_interface(options: GenerationOptions) -> list[str]:
    lines: list[str] = []
    _doc(
        lines,
        options,
        "Typed runtime API for use in card scripts",
        "Provides compile-time safety for variable and flag operations",
    )
    lines.extend(
        [
            "export interface TypedRuntime {",
            "  /** Get a typed variable value */",
            "  getVariable<K extends VariableName>(key: K): StoryVariables[K]",
            "  /** Set a typed variable value */",
            "  setVariable<K extends VariableName>(key: K, value: StoryVariables[K]): void",
            "  /** Check if a flag is set */",
            "  hasFlag(flag: StoryFlag): boolean",
            "  /** Set a flag */",
            "  setFlag(flag: StoryFlag): void",
            "  /** Clear a flag */",
            "  clearFlag(flag: StoryFlag): void",
            "  /** Check if a card has been visited */",
            "  hasVisited(cardId: CardId): boolean",
            "  /** Get total visited card count */",
            "  getVisitCount(): number",
            "  /** Get current card ID */",
            "  getCurrentCardId(): CardId | null",
            "  /** Get total play time in milliseconds */",
            "  getPlayTime(): number",
            "}",
            "",
        ]
    )
    return lines


def generate_bundle_types(
    bundle: CompiledStoryBundle,
    options: GenerationOptions,
    *,
    generated_at: datetime | None = None,
    extension: str = DEFAULT_DECLARATION_EXTENSION,
) -> TypeGenerationResult:
    """Render the declaration file for one bundle.

    Output depends only on `bundle` and `options`; `generated_at` appears in the
    header line and in the returned stats and nowhere else.
    """
    timestamp = iso_timestamp_ms(generated_at or utc_now_aware())
    data = bundle.data
    scripts = [card.script for card in data.cards]
    variables = collect_variable_usage(scripts) if options.infer_variable_types else None
    flags = collect_flag_usage(scripts) if options.infer_flag_types else None

    lines: list[str] = []
    lines.extend(render_header(bundle, timestamp))
    lines.extend(render_card_types(data.cards, options))
    lines.extend(render_choice_types(data.choices, options))
    lines.extend(render_character_types(data.characters, options))
    lines.extend(render_variable_types(variables, options))
    lines.extend(render_flag_types(flags, options))
    lines.extend(render_navigation_types(data.navigation, options))
    lines.extend(render_metadata_type(bundle.metadata, options))
    lines.extend(render_entity_interfaces(bundle, options))
    lines.extend(render_runtime_interface(options))

    stats = TypeGenerationStats(
        card_id_count=len(data.cards),
        choice_id_count=len(data.choices),
        character_id_count=len(data.characters),
        variable_count=len(variables or {}),
        flag_count=len(flags or []),
        generated_at=timestamp,
    )
    return TypeGenerationResult(
        content="\n".join(lines),
        filename=bundle_output_filename(bundle, extension),
        stats=stats,
    )
