from pathlib import Path

import pytest

from pixreduce.config.loader import load_object, load_reduction_config, reduction_config_from_dict
from pixreduce.config.profiles import (
    apply_profile,
    available_profiles,
    resolve_profile,
    suggested_batch_size,
)
from pixreduce.config.schema import ReductionConfig
from pixreduce.pipeline.registry import (
    available_combiners,
    available_extractors,
    resolve_combiner,
    resolve_extractor,
)


class TestReductionConfig:
    def test_defaults(self):
        config = ReductionConfig()
        config.validate()
        assert config.extractor == "red"
        assert config.combiner == "sum"
        assert config.batch_size == 256

    @pytest.mark.parametrize(
        "overrides",
        [
            {"batch_size": 0},
            {"max_workers": 0},
            {"reduce_mode": "parallel"},
            {"tree_chunk_size": -1},
        ],
    )
    def test_validate_rejects(self, overrides):
        with pytest.raises(ValueError):
            ReductionConfig(**overrides).validate()


class TestLoader:
    def test_default_when_no_reference(self):
        assert load_reduction_config(None) == ReductionConfig()

    def test_load_from_path(self, tmp_path: Path):
        module = tmp_path / "cfg_module.py"
        module.write_text(
            "from pixreduce.config.schema import ReductionConfig\n"
            "CONFIG = ReductionConfig(extractor='alpha', batch_size=64)\n"
            "AS_DICT = {'combiner': 'max', 'reduce_mode': 'tree'}\n",
            encoding="utf-8",
        )
        config = load_reduction_config(f"{module}:CONFIG")
        assert config.extractor == "alpha"
        assert config.batch_size == 64

        from_dict = load_reduction_config(f"{module}:AS_DICT")
        assert from_dict.combiner == "max"
        assert from_dict.reduce_mode == "tree"

    def test_reference_must_name_attribute(self):
        with pytest.raises(ValueError):
            load_object("pixreduce.config.schema")

    def test_wrong_type(self):
        with pytest.raises(TypeError):
            load_reduction_config("pixreduce.config.schema:ReductionConfig")

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValueError):
            reduction_config_from_dict({"batchsize": 10})

    def test_from_dict_coerces(self):
        config = reduction_config_from_dict({"batch_size": "32", "max_workers": "2"})
        assert config.batch_size == 32
        assert config.max_workers == 2


class TestProfiles:
    def test_apply_profile(self):
        config = ReductionConfig()
        profile = apply_profile(config, "Throughput")
        assert profile.name == "throughput"
        assert config.reduce_mode == "tree"
        assert config.batch_size == profile.batch_size

    def test_unknown_profile(self):
        with pytest.raises(ValueError) as excinfo:
            resolve_profile("turbo")
        assert "balanced" in str(excinfo.value)

    def test_all_profiles_produce_valid_configs(self):
        for name in available_profiles():
            config = ReductionConfig()
            apply_profile(config, name)
            config.validate()

    def test_suggested_batch_size(self):
        assert suggested_batch_size(0) == 1
        assert suggested_batch_size(1) == 1
        assert suggested_batch_size(10_000_000) >= 1


class TestRegistry:
    def test_builtins(self):
        assert set(available_extractors()) == {"red", "green", "blue", "alpha", "luma"}
        assert set(available_combiners()) == {"sum", "max", "min"}

    def test_resolution_is_case_insensitive(self):
        assert resolve_extractor(" Red ").name == "red"
        assert resolve_combiner("SUM").identity == 0

    def test_unknown_names(self):
        with pytest.raises(ValueError):
            resolve_extractor("hue")
        with pytest.raises(ValueError):
            resolve_combiner("mean")
