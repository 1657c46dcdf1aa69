import pytest

from harness.config import BuildConfiguration, HarnessConfig, RetryPolicy, ScenarioOptions
from harness.config.constants import (
    BASE_IMAGE_PULL_SECRET_NAME_KEY,
    FINAL_IMAGE_PULLSPEC_KEY,
    FINAL_IMAGE_PUSH_SECRET_NAME_KEY,
    IMAGE_BUILDER_TYPE_KEY,
    ImageBuilderType,
)


def test_build_configuration_uses_recognized_keys():
    data = BuildConfiguration(
        builder_type=ImageBuilderType.CustomPodBuilder,
        base_pull_secret_name="global-pull-secret-copy",
        final_push_secret_name="builder-dockercfg-x7k2p",
        final_pullspec="image-registry:5000/mco/os-image:latest",
    ).as_data()

    assert data == {
        BASE_IMAGE_PULL_SECRET_NAME_KEY: "global-pull-secret-copy",
        FINAL_IMAGE_PUSH_SECRET_NAME_KEY: "builder-dockercfg-x7k2p",
        FINAL_IMAGE_PULLSPEC_KEY: "image-registry:5000/mco/os-image:latest",
        IMAGE_BUILDER_TYPE_KEY: "custom-pod-builder",
    }


def test_harness_config_from_toml(tmp_path):
    path = tmp_path / "harness.toml"
    path.write_text(
        'kubeconfig = "/tmp/kubeconfig"\n'
        "build_timeout = 90\n"
        "image_stream_timeout = 15\n"
        "skip_cleanup = true\n"
        "\n"
        "[retry]\n"
        "max_attempts = 8\n"
    )

    config = HarnessConfig.from_toml_file(path)

    assert config.kubeconfig == "/tmp/kubeconfig"
    assert config.build_timeout == 90
    assert config.image_stream_timeout == 15
    assert config.skip_cleanup is True
    assert config.retry == RetryPolicy(max_attempts=8)


def test_harness_config_rejects_unknown_keys():
    with pytest.raises(ValueError, match="build_timeot"):
        HarnessConfig.from_dict({"build_timeot": 10})


def test_harness_config_round_trips_through_toml(tmp_path):
    config = HarnessConfig(kubeconfig="/tmp/kc", poll_interval=2.5, retry=RetryPolicy(max_attempts=3))
    path = tmp_path / "out.toml"
    path.write_text(config.as_toml_string())

    assert HarnessConfig.from_toml_file(path) == config


def test_scenario_options_overrides():
    options = ScenarioOptions(dockerfile_overrides={"layered": "FROM configs AS final"})

    [override] = options.overrides()

    assert override.pool == "layered"
    assert override.content == "FROM configs AS final"
