"""Tests for variant, matrix and result models."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from compatforge.models.matrix import (
    DEFAULT_MATRIX,
    SAMPLE_MATRIX_TOML,
    BuildTemplate,
    MatrixConfig,
    MatrixConfigError,
    load_matrix,
    resolve_matrix,
)
from compatforge.models.results import (
    PIPELINE_STAGES,
    BranchResult,
    BranchStatus,
    FailureCategory,
    RunRecord,
    StageState,
)
from compatforge.models.variants import (
    DEFAULT_VARIANTS,
    BuildVariant,
    artifact_name,
    stash_name,
)


class TestBuildVariant:
    def test_version_is_stripped(self):
        assert BuildVariant(version="  3.2.4 ").version == "3.2.4"

    @pytest.mark.parametrize("bad", ["", "   ", "a/b", "a\\b", "..", "."])
    def test_rejects_unusable_versions(self, bad: str):
        with pytest.raises(ValidationError):
            BuildVariant(version=bad)

    def test_frozen(self):
        variant = BuildVariant(version="1.0")
        with pytest.raises(ValidationError):
            variant.version = "2.0"

    def test_default_variants_are_unique(self):
        versions = [v.version for v in DEFAULT_VARIANTS]
        assert len(versions) == len(set(versions)) > 0


class TestArtifactNaming:
    def test_default_pattern(self):
        assert artifact_name("2.4.1") == "dependency-tree-2.4.1.txt"

    def test_deterministic(self):
        assert artifact_name("3.0.0-beta") == artifact_name("3.0.0-beta")

    def test_distinct_versions_give_distinct_names(self):
        assert artifact_name("1.0") != artifact_name("1.1")

    def test_custom_pattern(self):
        assert artifact_name("1.0", "tree_{version}.log") == "tree_1.0.log"

    def test_pattern_without_version_rejected(self):
        with pytest.raises(ValueError):
            artifact_name("1.0", "tree.txt")

    def test_stash_name(self):
        assert stash_name("1.0") == "deptree-1.0"


class TestMatrixConfig:
    def test_default_matrix_uses_default_variants(self):
        assert DEFAULT_MATRIX.variants == DEFAULT_VARIANTS

    def test_rejects_empty_variants(self):
        with pytest.raises(ValidationError):
            MatrixConfig(variants=[])

    def test_rejects_duplicate_versions(self):
        with pytest.raises(ValidationError):
            MatrixConfig(variants=[BuildVariant(version="1.0"), BuildVariant(version="1.0")])

    def test_template_pattern_must_reference_version(self):
        with pytest.raises(ValidationError):
            BuildTemplate(tree_file_pattern="tree.txt")

    def test_versions_in_order(self, matrix: MatrixConfig):
        assert matrix.versions == ["1.0", "2.0", "3.0"]


class TestLoadMatrix:
    def test_string_variants(self, tmp_path: Path):
        path = tmp_path / "m.toml"
        path.write_text(
            'variants = ["b", "a"]\n'
            "[project]\nname = \"demo\"\n"
            "[repository]\nurl = \"https://git.example.com/demo.git\"\nbranch = \"dev\"\n"
        )
        matrix = load_matrix(path)
        assert matrix.project_name == "demo"
        assert matrix.repository.branch == "dev"
        assert matrix.versions == ["b", "a"]

    def test_table_variants(self, tmp_path: Path):
        path = tmp_path / "m.toml"
        path.write_text('[[variants]]\nversion = "1.0"\n[[variants]]\nversion = "2.0"\n')
        assert load_matrix(path).versions == ["1.0", "2.0"]

    def test_sample_matrix_is_valid(self, tmp_path: Path):
        path = tmp_path / "m.toml"
        path.write_text(SAMPLE_MATRIX_TOML)
        matrix = load_matrix(path)
        assert matrix.versions == DEFAULT_MATRIX.versions
        assert matrix.report.keep_all is True

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(MatrixConfigError):
            load_matrix(tmp_path / "nope.toml")

    def test_invalid_toml(self, tmp_path: Path):
        path = tmp_path / "m.toml"
        path.write_text("variants = [")
        with pytest.raises(MatrixConfigError):
            load_matrix(path)

    def test_invalid_definition(self, tmp_path: Path):
        path = tmp_path / "m.toml"
        path.write_text('variants = ["1.0", "1.0"]\n')
        with pytest.raises(MatrixConfigError):
            load_matrix(path)

    def test_resolve_falls_back_to_default(self, tmp_path: Path):
        assert resolve_matrix(tmp_path / "absent.toml") is DEFAULT_MATRIX
        assert resolve_matrix(None) is DEFAULT_MATRIX


class TestResults:
    def test_failure_factory(self):
        result = BranchResult.failure(
            "1.0", "dependency-tree-1.0.txt", FailureCategory.BUILD, "exit 2", returncode=2
        )
        assert result.status == BranchStatus.FAILURE
        assert result.succeeded is False
        assert result.returncode == 2

    def test_run_record_starts_with_all_stages_not_started(self):
        record = RunRecord(build_number=1, project_name="p")
        assert set(record.stage_states) == {s.stage_id for s in PIPELINE_STAGES}
        assert all(s == StageState.NOT_STARTED for s in record.stage_states.values())

    def test_run_record_json_round_trip(self):
        record = RunRecord(
            build_number=7,
            project_name="p",
            results=[
                BranchResult(
                    version="1.0",
                    status=BranchStatus.SUCCESS,
                    artifact_name="dependency-tree-1.0.txt",
                )
            ],
        )
        restored = RunRecord.model_validate_json(record.model_dump_json())
        assert restored == record
