# cellrep

Building blocks for a cell representative in a container scheduler:

- `cellrep.conversion` turns scheduler model values into what a container
  executor needs: root filesystem rewriting for two-layer mode, port
  mappings, cached dependencies, volume mounts and log rate limits.
- `cellrep.config` reads the representative's JSON configuration file and
  parses and formats duration strings.
- `cellrep.gocurl` is a small HTTP(S) probe, also installed as the
  `cellrep-gocurl` command.
- `cellrep.testrunner` starts and stops a representative binary with a
  given configuration, for integration tests.

The package needs nothing beyond the standard library.

## Installing

```
pip install .
```

With the test tools:

```
pip install ".[test]"
pytest
```

## Conversion helpers

```python
from cellrep.conversion import (
    ImageLayer, LayerType, MediaType, DigestAlgorithm,
    convert_preloaded_rootfs, convert_port_mappings, convert_log_rate_limit,
)

layer = ImageLayer(
    url="https://droplet.example.com/download",
    destination_path="/home/vcap",
    layer_type=LayerType.EXCLUSIVE,
    media_type=MediaType.TGZ,
    digest_algorithm=DigestAlgorithm.SHA256,
    digest_value="the-real-digest",
)
root_fs, layers = convert_preloaded_rootfs("preloaded:cflinuxfs3", [layer], "two-layer")
```

In `"two-layer"` mode (`LAYERING_MODE_TWO_LAYER`) a `preloaded:` root
filesystem is rewritten to a
`preloaded+layer:<stack>?layer=...&layer_path=...&layer_digest=...` URL
naming the first layer that is exclusive, tgz and sha256, and that layer is
dropped from the returned list. In every other case the root filesystem
and the layers come back unchanged.

Other helpers:

- `convert_port_mappings([8080])` gives one `PortMapping` per container port.
- `convert_cached_dependency(mapping)` and `convert_cached_dependencies(mappings)`
  build `CachedDependency` values from mappings with the keys `name`,
  `from`, `to`, `cache_key`, `log_source`, `checksum_value` and
  `checksum_algorithm`.
- `convert_volume_mount(spec)` and `convert_volume_mounts(specs)` turn
  `VolumeMountSpec` values into `VolumeMount` values with a `BindMountMode`;
  a mode other than `"r"` or `"rw"`, or a mount configuration that is not a
  JSON object, raises `VolumeMountError`.
- `convert_log_rate_limit(None)` is `-1`, meaning no limit; any other value
  is returned as it is.
- `lrp_container_guid(process_guid, instance_guid)` returns the instance guid.

The module also defines the container tag names (`LIFECYCLE_TAG`,
`PROCESS_GUID_TAG`, `INSTANCE_GUID_TAG` and the like).

## Configuration

```python
from cellrep.config import RepConfig, parse_duration, format_duration

config = RepConfig.load("/etc/rep/config.json")
print(config.cell_id, config.communication_timeout)
print(config.preloaded_root_fs.stack_path_map())
print(parse_duration("1m30s"))    # 90.0
print(format_duration(90.0))      # "1m30s"
```

Durations are strings such as `"11s"`, `"5m"` or `"1.5h"` and are held as
seconds. Preloaded root filesystems are listed as `"stack-name:path"`
strings and read into `RootFSes`, whose `names()`, `stack_path_map()` and
`to_json()` give the stack names, the stack-to-path mapping and the JSON
form. Keys the representative section does not know (executor, logging,
debug-server and lock-service settings) are kept as read in
`RepConfig.extra`, and the `loggregator` object is kept as a dict;
`to_dict()` writes everything back out.

Invalid JSON, a value of the wrong type, a bad duration or a malformed root
filesystem entry raises `ConfigError`. A missing file raises the usual
`FileNotFoundError`.

## The probe command

```
cellrep-gocurl --cacert ca.crt --cert client.crt --key client.key https://127.0.0.1:1800/ping
cellrep-gocurl -X POST http://127.0.0.1:1700/evacuate
cellrep-gocurl -H Custom=something --max-time 0.1s http://127.0.0.1:1700/ping
```

It sends one GET or POST request to exactly one URL, prints the response
body and exits 0 on a 2xx status. Any other status, a missing URL, an
unsupported method, a TLS setup that cannot be loaded (for example when
only some of the certificate options are given), a timeout or a connection
failure is logged on standard error and the exit status is 1. The same
steps are available from Python as `parse_header`, `build_ssl_context` and
`fetch`, which raise `CurlError`.

## Test runner

```python
from cellrep.config import RepConfig
from cellrep.testrunner import Runner

runner = Runner("/path/to/rep", RepConfig(cell_id="cell-1"))
runner.start()
...
runner.stop()
print(runner.output)
```

`Runner` writes the configuration's `to_dict()` form to a temporary file
and starts the binary with `--config` pointing at it. Its standard output
and standard error are echoed to a writer (standard output by default)
with coloured `[o]`/`[e]` prefixes and collected, unprefixed, in `output`.
`start()` raises `RunnerError` if a copy is still running. `stop()` sends
an interrupt and `kill_with_fire()` kills the process; both remove the
configuration file, wait up to five seconds for the exit and raise
`RunnerError` if it does not come.

## What the package does not do

It does not contain the representative itself: there is no long-running
daemon, no HTTP API server, no presence registration and no bookkeeping of
containers. Nor does it build complete run requests from LRP or task
definitions or look up registry credentials; the conversion helpers cover
only the individual pieces listed above.