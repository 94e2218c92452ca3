import pytest

from nvdpconfig.duration import Duration
from nvdpconfig.flags import (
    CliContext,
    CliFlag,
    Flags,
    GFDCommandLineFlags,
    PluginCommandLineFlags,
    parse_device_list_strategy,
)
from nvdpconfig.resources import ConfigError


SECOND = 1_000_000_000


@pytest.mark.parametrize(
    "text, expected",
    [
        ("{}", Flags()),
        ('{"gfd": {}}', Flags(gfd=GFDCommandLineFlags())),
        (
            '{"gfd": {"sleepInterval": 0}}',
            Flags(gfd=GFDCommandLineFlags(sleep_interval=Duration(0))),
        ),
        (
            '{"gfd": {"sleepInterval": "0s"}}',
            Flags(gfd=GFDCommandLineFlags(sleep_interval=Duration(0))),
        ),
        (
            '{"gfd": {"sleepInterval": 5}}',
            Flags(gfd=GFDCommandLineFlags(sleep_interval=Duration(5))),
        ),
        (
            '{"gfd": {"sleepInterval": "5s"}}',
            Flags(gfd=GFDCommandLineFlags(sleep_interval=Duration(5 * SECOND))),
        ),
        (
            '{"plugin": {"deviceListStrategy": "envvar"}}',
            Flags(plugin=PluginCommandLineFlags(device_list_strategy=["envvar"])),
        ),
        (
            '{"plugin": {"deviceListStrategy": ["envvar", "cdi-annotations"]}}',
            Flags(
                plugin=PluginCommandLineFlags(
                    device_list_strategy=["envvar", "cdi-annotations"]
                )
            ),
        ),
    ],
)
def test_unmarshal_flags(text, expected):
    assert Flags.parse(text) == expected


def test_unmarshal_empty_input_fails():
    with pytest.raises(ConfigError):
        Flags.parse("")


def test_unmarshal_invalid_device_list_strategy_fails():
    with pytest.raises(ConfigError, match="invalid deviceListStrategy"):
        Flags.parse('{"plugin": {"deviceListStrategy": 3}}')


def test_unmarshal_invalid_sleep_interval_fails():
    with pytest.raises(ConfigError):
        Flags.parse('{"gfd": {"sleepInterval": true}}')


def test_unmarshal_wrong_type_fails():
    with pytest.raises(ConfigError):
        Flags.parse('{"migStrategy": 1}')


_BASE = {
    "migStrategy": None,
    "failOnInitError": None,
    "gdsEnabled": None,
    "mofedEnabled": None,
    "useNodeFeatureAPI": None,
    "deviceDiscoveryStrategy": None,
}


def _gfd_json(sleep_interval):
    return {
        "oneshot": None,
        "noTimestamp": None,
        "outputFile": None,
        "sleepInterval": sleep_interval,
        "machineTypeFile": None,
    }


@pytest.mark.parametrize(
    "flags, expected",
    [
        (Flags(), _BASE),
        (
            Flags(gfd=GFDCommandLineFlags(sleep_interval=Duration(0))),
            {**_BASE, "gfd": _gfd_json("0s")},
        ),
        (
            Flags(gfd=GFDCommandLineFlags(sleep_interval=Duration(5))),
            {**_BASE, "gfd": _gfd_json("5ns")},
        ),
    ],
)
def test_marshal_flags(flags, expected):
    assert flags.to_json() == expected


def test_marshal_round_trip():
    flags = Flags(
        mig_strategy="mixed",
        nvidia_driver_root="/run/nvidia/driver",
        plugin=PluginCommandLineFlags(
            pass_device_specs=True, device_list_strategy=["envvar", "cdi-cri"]
        ),
        gfd=GFDCommandLineFlags(oneshot=True, sleep_interval=Duration(5 * SECOND)),
    )
    assert Flags.from_json(flags.to_json()) == flags


def test_parse_device_list_strategy():
    assert parse_device_list_strategy("envvar") == ["envvar"]
    assert parse_device_list_strategy(["envvar", "cdi-cri"]) == ["envvar", "cdi-cri"]
    with pytest.raises(ConfigError):
        parse_device_list_strategy([1])


def test_cli_context_values_and_defaults():
    flag = CliFlag("driver-root", default="/", aliases=("nvidia-driver-root",))
    context = CliContext(flags=[flag], values={"nvidia-driver-root": "/host"})
    assert context.is_set("driver-root")
    assert context.value("driver-root") == "/host"
    assert not context.is_set("missing")
    assert context.value("missing") is None
    assert CliContext(flags=[flag]).value("driver-root") == "/"


def test_defaults_fill_unset_flags():
    cli_flags = [
        CliFlag("mig-strategy", default="none"),
        CliFlag("fail-on-init-error", default=True),
    ]
    flags = Flags()
    flags.update_from_cli_flags(CliContext(flags=cli_flags), cli_flags)
    assert flags.mig_strategy == "none"
    assert flags.fail_on_init_error is True
    assert flags.plugin == PluginCommandLineFlags()
    assert flags.gfd == GFDCommandLineFlags()


def test_configured_value_kept_when_not_given():
    cli_flags = [CliFlag("mig-strategy", default="none")]
    flags = Flags(mig_strategy="mixed")
    flags.update_from_cli_flags(CliContext(flags=cli_flags), cli_flags)
    assert flags.mig_strategy == "mixed"


def test_explicit_value_overrides_configured():
    cli_flags = [CliFlag("mig-strategy", default="none")]
    flags = Flags(mig_strategy="mixed")
    context = CliContext(flags=cli_flags, values={"mig-strategy": "single"})
    flags.update_from_cli_flags(context, cli_flags)
    assert flags.mig_strategy == "single"


def test_alias_updates_driver_root():
    cli_flags = [CliFlag("driver-root", default="/", aliases=("nvidia-driver-root",))]
    context = CliContext(flags=cli_flags, values={"nvidia-driver-root": "/run/nvidia/driver"})
    flags = Flags()
    flags.update_from_cli_flags(context, cli_flags)
    assert flags.nvidia_driver_root == "/run/nvidia/driver"


def test_plugin_and_gfd_flags():
    cli_flags = [
        CliFlag("device-list-strategy", default=["envvar"]),
        CliFlag("nvidia-ctk-path", default="/usr/bin/nvidia-ctk"),
        CliFlag("sleep-interval", default="60s"),
        CliFlag("oneshot", default=False),
    ]
    context = CliContext(
        flags=cli_flags, values={"device-list-strategy": ["envvar", "cdi-cri"]}
    )
    flags = Flags()
    flags.update_from_cli_flags(context, cli_flags)
    assert flags.plugin.device_list_strategy == ["envvar", "cdi-cri"]
    assert flags.plugin.nvidia_ctk_path == "/usr/bin/nvidia-ctk"
    assert flags.gfd.sleep_interval == Duration.from_json("60s")
    assert flags.gfd.oneshot is False


def test_no_cli_flags_leaves_sections_unset():
    flags = Flags()
    flags.update_from_cli_flags(CliContext(), [])
    assert flags == Flags()