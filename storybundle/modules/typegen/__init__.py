from storybundle.modules.typegen.emitter import (
    bundle_output_filename,
    bundle_slug,
    escape_string_literal,
    generate_bundle_types,
)
from storybundle.modules.typegen.schemas import CompiledStoryBundle, GenerationOptions, TypeGenerationResult
from storybundle.modules.typegen.usage import collect_flag_usage, collect_variable_usage, infer_type_from_expression

__all__ = [
    "CompiledStoryBundle",
    "GenerationOptions",
    "TypeGenerationResult",
    "bundle_output_filename",
    "bundle_slug",
    "collect_flag_usage",
    "collect_variable_usage",
    "escape_string_literal",
    "generate_bundle_types",
    "infer_type_from_expression",
]
