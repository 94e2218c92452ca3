# nvdpconfig

A typed model of the `v1` configuration file used by a Kubernetes GPU device
plugin and its companion feature-discovery daemon. It reads YAML or JSON
configuration, validates resource names, sharing settings (time-slicing and
MPS) and device-list strategies, and merges command-line settings over file
settings.

## Installation

```
pip install nvdpconfig
```

## Reading a configuration file

```python
from nvdpconfig.config import parse_config

config = parse_config("/etc/device-plugin/config.yaml")
print(config.version)                        # v1
print(config.sharing.sharing_strategy())     # none, time-slicing or mps
```

A configuration without a `version` is taken to be `v1`; any other version is
rejected with a `ConfigError` (a subclass of `ValueError`, found in
`nvdpconfig.resources`). An already open text or binary stream can be read
with `parse_config_from(reader)`. `Config.from_json(data)` builds a config from
decoded data and `Config.to_json()` turns it back into plain dictionaries.

An example file:

```yaml
version: v1
flags:
  migStrategy: none
  plugin:
    deviceListStrategy: [envvar, cdi-annotations]
  gfd:
    sleepInterval: 60s
sharing:
  timeSlicing:
    renameByDefault: false
    resources:
      - name: nvidia.com/gpu
        replicas: 4
```

## Command-line precedence

`new_config(context, flags)` builds a `Config` from a `CliContext`. Flags are
described with `CliFlag(name, default, aliases)`; the context holds the values
actually given on the command line.

```python
from nvdpconfig.config import new_config
from nvdpconfig.flags import CliContext, CliFlag

flags = [CliFlag("config-file"), CliFlag("mig-strategy", default="none")]
context = CliContext(flags=flags, values={"mig-strategy": "single"})
config = new_config(context, flags)
config.flags.mig_strategy    # "single"
```

The file named by the `config-file` value is read first. Then each flag that
was given on the command line overrides the file, and a flag's default fills
in any setting the file left unset. If `nvidia_dev_root` is still empty it
takes the value of `nvidia_driver_root`, and when MPS sharing is configured
its `fail_requests_greater_than_one` is always set to `True`.

`disable_resource_naming_in_config(logger, config)` drops custom `resources`
entries and resets renames and device selections in the sharing settings,
calling `logger.warning(...)` for each kind of setting it discards; a standard
`logging.Logger` works.

## Resource names and patterns

`new_resource_name("gpu")` returns `ResourceName("nvidia.com/gpu")`. Names are
prefixed with `nvidia.com/` when needed, may be at most 63 characters in total,
and the part after the prefix must be a lowercase DNS subdomain.
`ResourceName.default_shared_rename()` appends `.shared`.
`ResourcePattern("A100*").matches(text)` treats `*` as a wildcard and looks
for the pattern anywhere in `text`. `Resources.add_gpu_resource(pattern, name)`
and `add_mig_resource(pattern, name)` append validated entries.

## Replicated resources

```python
from nvdpconfig.replicas import ReplicatedDevices, ReplicatedDeviceRef

ReplicatedDevices.parse('["0", "0:0"]').to_json()    # ["0", "0:0"]
ReplicatedDeviceRef("0:1").is_mig_index()            # True
```

A device list may be `"all"`, a positive count, or a list of GPU indices,
MIG indices (`"0:1"`), GPU UUIDs (`GPU-<uuid>`) and MIG UUIDs (`MIG-<uuid>` or
`MIG-GPU-<uuid>/<gi>/<ci>`). `ReplicatedResource` requires a name and at least
two replicas and defaults its devices to `"all"`; `ReplicatedResources`
requires at least one resource and fills in a `.shared` rename when
`renameByDefault` is set.

`Sharing.sharing_strategy()` reports `SharingStrategy.MPS` when MPS has a
resource with more than one replica, otherwise `TIME_SLICING` when
time-slicing does, otherwise `NONE`.

## Device-list strategies

```python
from nvdpconfig.strategy import new_device_list_strategies

strategies = new_device_list_strategies(["envvar", "cdi-cri"])
strategies.includes("envvar")   # True
strategies.any_cdi_enabled()    # True
strategies.all_cdi_enabled()    # False
```

The known strategies are `envvar`, `volume-mounts`, `cdi-annotations` and
`cdi-cri`; any other name raises `ConfigError`.

## Durations

`Duration` (in `nvdpconfig.duration`) is an `int` of nanoseconds. It accepts
either a number of nanoseconds or a duration string such as `"1h30m"` or
`"5s"`, and is written back in the string form (`"5ns"`, `"1m30s"`).
`parse_duration` and `format_duration` convert between the two directly.

## What this package does not do

It only models and validates configuration. It has no command-line program of
its own, does not discover GPUs, does not talk to the kubelet or the
Kubernetes API, and does not label nodes.

## Running the tests

```
pip install "nvdpconfig[test]"
pytest
```