"""Tests for the path filter decision table."""

import pytest

from scansentinel.engines.scan_pipeline.path_filter import (
    PathDecision,
    decide,
    file_extension,
    is_skipped,
    language_hint,
)


class TestDecide:
    @pytest.mark.parametrize(
        "path",
        [
            "node_modules/lodash/index.js",
            "web/node_modules/x.py",
            "node_modules",
            "a/b/node_modules/c/d.ts",
        ],
    )
    def test_node_modules_always_skipped(self, path):
        assert decide(path) is PathDecision.SKIP
        assert decide(path, is_dir=True) is PathDecision.SKIP

    def test_source_file_analyzed(self):
        assert decide("src/app.py") is PathDecision.ANALYZE

    def test_unlisted_extension_skipped(self):
        assert decide("image.png") is PathDecision.SKIP
        assert decide("docs/README") is PathDecision.SKIP

    def test_directories_descended(self):
        assert decide("src", is_dir=True) is PathDecision.DESCEND
        assert decide("src/lib", is_dir=True) is PathDecision.DESCEND

    @pytest.mark.parametrize("segment", ["dist", "build", ".git", "vendor", "target", "bin", "obj"])
    def test_denylisted_segments(self, segment):
        assert decide(f"{segment}/main.go") is PathDecision.SKIP
        assert decide(f"src/{segment}", is_dir=True) is PathDecision.SKIP

    def test_packages_segment_skipped(self):
        assert decide("packages/core/index.ts") is PathDecision.SKIP

    def test_segment_match_not_substring(self):
        # "builder" and "distance" only contain denylisted names
        assert decide("builder/app.py") is PathDecision.ANALYZE
        assert decide("src/distance.js") is PathDecision.ANALYZE

    def test_extension_case_insensitive(self):
        assert decide("Main.JAVA") is PathDecision.ANALYZE

    @pytest.mark.parametrize(
        "path", ["config.yml", "settings.toml", "schema.sql", "style.scss", "run.sh"]
    )
    def test_config_and_script_files_analyzed(self, path):
        assert decide(path) is PathDecision.ANALYZE


class TestHelpers:
    def test_file_extension(self):
        assert file_extension("a/b/c.tar.gz") == ".gz"
        assert file_extension("Makefile") == ""
        assert file_extension(".bashrc") == ""
        assert file_extension("x.PY") == ".py"

    def test_is_skipped(self):
        assert is_skipped("vendor/x")
        assert not is_skipped("src/vendors/x")

    def test_language_hint_from_extension(self):
        assert language_hint("app.tsx", "JavaScript") == "tsx"

    def test_language_hint_falls_back(self):
        assert language_hint("Dockerfile", "Go") == "Go"
