import dataclasses
import json
import math

import pytest

from mvnorm.errors import ConfigError
from mvnorm.layer_config import LayerParams, MVNConfig, load_layer_params


def test_defaults():
    config = MVNConfig.from_params(LayerParams())
    assert config.normalize_variance is True
    assert config.across_channels is False
    assert config.eps == pytest.approx(1e-9)
    assert config.split_dim == 2


def test_across_channels_uses_one_dim_prefix():
    assert MVNConfig(across_channels=True).split_dim == 1


def test_from_mapping_lifts_metadata():
    params = LayerParams.from_mapping(
        {"name": "mvn1", "type": "MVN", "normalize_variance": "false", "across_channels": 1, "eps": "1e-5"}
    )
    assert params.name == "mvn1"
    assert params.type == "MVN"
    assert "name" not in params.params

    config = MVNConfig.from_params(params)
    assert config.normalize_variance is False
    assert config.across_channels is True
    assert config.eps == pytest.approx(1e-5)


@pytest.mark.parametrize(
    "params",
    [
        {"normalize_variance": "maybe"},
        {"across_channels": 2},
        {"eps": "tiny"},
        {"eps": True},
        {"eps": -1.0},
        {"eps": math.nan},
        {"eps": math.inf},
    ],
    ids=["bad_bool_str", "bad_bool_int", "bad_eps_str", "bool_eps", "negative_eps", "nan_eps", "inf_eps"],
)
def test_malformed_record_fails_construction(params):
    with pytest.raises(ConfigError):
        MVNConfig.from_params(LayerParams(params=params))


def test_zero_eps_is_accepted_with_warning(caplog):
    with caplog.at_level("WARNING"):
        config = MVNConfig(eps=0.0)
    assert config.eps == 0.0
    assert "divide by zero" in caplog.text


def test_config_is_immutable():
    config = MVNConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.eps = 1.0


def test_dict_round_trip():
    config = MVNConfig(normalize_variance=False, across_channels=True, eps=1e-6)
    assert MVNConfig.from_dict(config.to_dict()) == config


def test_load_layer_params(tmp_path):
    path = tmp_path / "mvn.json"
    path.write_text(json.dumps({"name": "norm", "params": {"across_channels": True, "eps": 0.001}}))

    params = load_layer_params(path)
    assert params.name == "norm"
    assert params.type == "MVN"
    config = MVNConfig.from_params(params)
    assert config.across_channels is True
    assert config.eps == pytest.approx(0.001)


def test_load_layer_params_requires_params_section(tmp_path):
    path = tmp_path / "mvn.json"
    path.write_text(json.dumps({"name": "norm"}))
    with pytest.raises(ConfigError, match="params"):
        load_layer_params(path)


def test_load_layer_params_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_layer_params(tmp_path / "absent.json")


def test_direct_construction_coerces_numeric_eps():
    assert MVNConfig(eps="1e-3").eps == 0.001
    assert isinstance(MVNConfig(eps=1).eps, float)


@pytest.mark.parametrize("eps", ["abc", None, False], ids=["str", "none", "bool"])
def test_direct_construction_rejects_bad_eps(eps):
    with pytest.raises(ConfigError):
        MVNConfig(eps=eps)
