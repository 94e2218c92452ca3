import pytest

from nvdpconfig.resources import (
    DEFAULT_SHARED_RESOURCE_NAME_SUFFIX,
    MAX_RESOURCE_NAME_LENGTH,
    RESOURCE_NAME_PREFIX,
    ConfigError,
    Resource,
    ResourceName,
    ResourcePattern,
    Resources,
    new_resource,
    new_resource_name,
)


def test_new_resource_name_adds_prefix():
    assert new_resource_name("gpu") == "nvidia.com/gpu"


def test_new_resource_name_keeps_existing_prefix():
    assert new_resource_name("nvidia.com/gpu") == "nvidia.com/gpu"


def test_new_resource_name_is_idempotent():
    once = new_resource_name("valid-shared")
    assert new_resource_name(once) == once


@pytest.mark.parametrize("name", ["$invalid$", "UPPER", "-dash", "dash-", "a_b", ""])
def test_new_resource_name_rejects_bad_format(name):
    with pytest.raises(ConfigError):
        new_resource_name(name)


def test_new_resource_name_length_limit():
    room = MAX_RESOURCE_NAME_LENGTH - len(RESOURCE_NAME_PREFIX) - 1
    assert len(new_resource_name("a" * room)) == MAX_RESOURCE_NAME_LENGTH
    with pytest.raises(ConfigError):
        new_resource_name("a" * (room + 1))


def test_config_error_is_value_error():
    with pytest.raises(ValueError):
        new_resource_name("$invalid$")


def test_split():
    assert ResourceName("nvidia.com/gpu").split() == ("nvidia.com", "gpu")
    assert ResourceName("gpu").split() == ("", "gpu")


def test_default_shared_rename():
    renamed = ResourceName("nvidia.com/gpu").default_shared_rename()
    assert renamed == "nvidia.com/gpu.shared"
    assert renamed.endswith(DEFAULT_SHARED_RESOURCE_NAME_SUFFIX)
    assert isinstance(renamed, ResourceName)


def test_resource_name_from_json():
    assert ResourceName.from_json("gpu") == new_resource_name("gpu")
    with pytest.raises(ConfigError):
        ResourceName.from_json(5)
    with pytest.raises(ConfigError):
        ResourceName.from_json("$invalid$")


def test_pattern_wildcard():
    assert ResourcePattern("*A100*").matches("NVIDIA A100-SXM4-40GB")
    assert not ResourcePattern("*H100*").matches("NVIDIA A100-SXM4-40GB")


def test_pattern_escapes_metacharacters():
    assert not ResourcePattern("a.c").matches("abc")
    assert ResourcePattern("a.c").matches("a.c")


def test_pattern_is_unanchored():
    assert ResourcePattern("A100").matches("x A100 y")


def test_resource_from_json_round_trip():
    resource = new_resource("*A100*", "gpu")
    assert Resource.from_json(resource.to_json()) == resource


@pytest.mark.parametrize(
    "value",
    [{"name": "gpu"}, {"pattern": "*"}, {"pattern": 1, "name": "gpu"}, "gpu", None],
)
def test_resource_from_json_errors(value):
    with pytest.raises(ConfigError):
        Resource.from_json(value)


def test_new_resource_invalid_name():
    with pytest.raises(ConfigError, match="invalid resource name"):
        new_resource("*", "$invalid$")


def test_resources_add():
    resources = Resources()
    resources.add_gpu_resource("*A100*", "gpu")
    resources.add_mig_resource("1g.5gb", "mig-1g.5gb")
    assert [r.name for r in resources.gpus] == [new_resource_name("gpu")]
    assert [r.name for r in resources.migs] == [new_resource_name("mig-1g.5gb")]


def test_resources_add_invalid_leaves_list_unchanged():
    resources = Resources()
    with pytest.raises(ConfigError):
        resources.add_gpu_resource("*", "$invalid$")
    assert resources.gpus == []


def test_resources_round_trip():
    resources = Resources()
    resources.add_gpu_resource("*", "gpu")
    resources.add_mig_resource("*", "mig")
    assert Resources.from_json(resources.to_json()) == resources


def test_resources_empty_to_json_omits_mig():
    data = Resources().to_json()
    assert "mig" not in data
    assert data["gpus"] is None


def test_resources_from_json_missing_fields():
    assert Resources.from_json({}) == Resources()
    assert Resources.from_json(None) == Resources()


def test_resources_from_json_bad_list():
    with pytest.raises(ConfigError):
        Resources.from_json({"gpus": "gpu"})