"""
Unit tests for extractor configuration.
"""

import json

from stmtextract.core.config import DEFAULT_CONFIG, ExtractorConfig


class TestExtractorConfig:
    """Tests for configuration defaults, merging and persistence."""

    def test_defaults(self):
        config = ExtractorConfig()

        assert config.extraction.enabled_extractors == []
        assert config.extraction.max_workers == 1
        assert config.loader.encoding == "utf-8"
        assert config.loader.pdf_password is None
        assert config.output.format == "csv"
        assert config.output.include_rejections is True
        assert config.log_level == "WARNING"

    def test_from_dict_merges_with_defaults(self):
        config = ExtractorConfig.from_dict({"extraction": {"max_workers": 4}})

        assert config.extraction.max_workers == 4
        assert config.extraction.enabled_extractors == []
        assert config.output.format == "csv"

    def test_defaults_not_mutated(self):
        ExtractorConfig.from_dict({"extraction": {"enabled_extractors": ["ingdiba"]}})
        assert DEFAULT_CONFIG["extraction"]["enabled_extractors"] == []

    def test_every_extractor_enabled_by_default(self):
        assert ExtractorConfig().extraction.is_enabled("CONSORSBANK")

    def test_enabled_extractors_case_insensitive(self):
        config = ExtractorConfig.from_dict({"extraction": {"enabled_extractors": ["IngDiba"]}})

        assert config.extraction.is_enabled("INGDIBA")
        assert not config.extraction.is_enabled("CONSORSBANK")

    def test_max_workers_at_least_one(self):
        config = ExtractorConfig.from_dict({"extraction": {"max_workers": 0}})
        assert config.extraction.max_workers == 1

    def test_unsupported_format_falls_back_to_csv(self):
        config = ExtractorConfig.from_dict({"output": {"format": "pdf"}})
        assert config.output.format == "csv"

    def test_log_level_upper_cased(self):
        config = ExtractorConfig.from_dict({"logging": {"level": "debug"}})
        assert config.log_level == "DEBUG"

    def test_load_missing_file_uses_defaults(self, tmp_path):
        config = ExtractorConfig.load(tmp_path / "missing.json")
        assert config.to_dict() == ExtractorConfig().to_dict()

    def test_load_invalid_json_uses_defaults(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        config = ExtractorConfig.load(path)

        assert config.output.format == "csv"

    def test_load_file(self, tmp_path):
        path = tmp_path / "extractor.json"
        path.write_text(json.dumps({"output": {"format": "xlsx", "include_rejections": False}}),
                        encoding="utf-8")

        config = ExtractorConfig.load(path)

        assert config.output.format == "xlsx"
        assert config.output.include_rejections is False

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "nested" / "extractor.json"
        original = ExtractorConfig.from_dict({"loader": {"pdf_password": "secret"}})

        original.save(path)
        reloaded = ExtractorConfig.load(path)

        assert reloaded.loader.pdf_password == "secret"
        assert reloaded.to_dict() == original.to_dict()
