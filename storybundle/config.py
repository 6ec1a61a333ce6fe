from pydantic_settings import BaseSettings, SettingsConfigDict

from storybundle.modules.typegen.schemas import GenerationOptions


class Settings(BaseSettings):
    app_name: str = "storybundle"

    bundles_input_path: str = "./bundles"
    types_output_path: str = "./src/types/bundles"
    declaration_extension: str = "d.ts"
    bundle_file_suffix: str = ".json"
    watch_poll_interval_s: float = 1.0
    log_level: str = "INFO"

    typegen_include_comments: bool = True
    typegen_strict_card_ids: bool = True
    typegen_strict_choice_ids: bool = True
    typegen_strict_character_ids: bool = True
    typegen_infer_variable_types: bool = True
    typegen_infer_flag_types: bool = True

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def generation_options_from_settings(source: Settings) -> GenerationOptions:
    return GenerationOptions(
        include_comments=bool(source.typegen_include_comments),
        strict_card_ids=bool(source.typegen_strict_card_ids),
        strict_choice_ids=bool(source.typegen_strict_choice_ids),
        strict_character_ids=bool(source.typegen_strict_character_ids),
        infer_variable_types=bool(source.typegen_infer_variable_types),
        infer_flag_types=bool(source.typegen_infer_flag_types),
    )


settings = Settings()
