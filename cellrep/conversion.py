"""Conversions from scheduling models into container run settings."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import quote_plus

LIFECYCLE_TAG = "lifecycle"
RESULT_FILE_TAG = "result-file"
DOMAIN_TAG = "domain"

TASK_LIFECYCLE = "task"
LRP_LIFECYCLE = "lrp"

PROCESS_GUID_TAG = "process-guid"
INSTANCE_GUID_TAG = "instance-guid"
PROCESS_INDEX_TAG = "process-index"

VOLUME_DRIVERS_TAG = "volume-drivers"
PLACEMENT_TAGS_TAG = "placement-tags"

LAYERING_MODE_SINGLE_LAYER = "single-layer"
LAYERING_MODE_TWO_LAYER = "two-layer"

_PRELOADED_PREFIX = "preloaded:"


class LayerType(Enum):
    INVALID = "invalid"
    SHARED = "shared"
    EXCLUSIVE = "exclusive"


class MediaType(Enum):
    INVALID = "invalid"
    TGZ = "tgz"
    TAR = "tar"
    ZIP = "zip"


class DigestAlgorithm(Enum):
    INVALID = "invalid"
    SHA256 = "sha256"
    SHA512 = "sha512"


@dataclass
class ImageLayer:
    """An image layer that a workload asks to have in its container."""

    url: str
    destination_path: str
    name: str = ""
    layer_type: LayerType = LayerType.INVALID
    media_type: MediaType = MediaType.INVALID
    digest_algorithm: DigestAlgorithm = DigestAlgorithm.INVALID
    digest_value: str = ""

    @property
    def fits_extra_rootfs_layer(self) -> bool:
        """True for exclusive sha256 tgz layers, which can ride in the rootfs."""
        return (
            self.layer_type is LayerType.EXCLUSIVE
            and self.media_type is MediaType.TGZ
            and self.digest_algorithm is DigestAlgorithm.SHA256
        )


@dataclass(frozen=True)
class CachedDependency:
    """A download the executor caches and places into the container."""

    name: str = ""
    source: str = ""
    destination: str = ""
    cache_key: str = ""
    log_source: str = ""
    checksum_value: str = ""
    checksum_algorithm: str = ""


@dataclass(frozen=True)
class PortMapping:
    container_port: int
    host_port: int = 0
    container_tls_proxy_port: int = 0
    host_tls_proxy_port: int = 0


class BindMountMode(Enum):
    RO = 0
    RW = 1


@dataclass
class VolumeMountSpec:
    """A volume mount as requested by a workload definition."""

    driver: str
    container_dir: str
    mode: str
    volume_id: str = ""
    mount_config: str = ""


@dataclass
class VolumeMount:
    """A volume mount as the executor understands it."""

    driver: str
    volume_id: str
    container_path: str
    mode: BindMountMode
    config: Optional[dict[str, Any]] = None


class VolumeMountError(ValueError):
    """Raised when a volume mount request cannot be converted."""


def convert_preloaded_rootfs(
    root_fs: str, image_layers: Iterable[ImageLayer], layering_mode: str
) -> tuple[str, list[ImageLayer]]:
    """Fold the first suitable exclusive layer into a preloaded rootfs URL.

    Only in two-layer mode and only for ``preloaded:`` rootfs URLs; the layer
    chosen is the first exclusive, tgz, sha256 one, and it is removed from
    the returned list. Otherwise the inputs come back unchanged.
    """
    layers = list(image_layers)
    if layering_mode != LAYERING_MODE_TWO_LAYER or not root_fs.startswith(_PRELOADED_PREFIX):
        return root_fs, layers

    remaining: list[ImageLayer] = []
    new_root_fs: Optional[str] = None
    for layer in layers:
        if new_root_fs is None and layer.fits_extra_rootfs_layer:
            stack = root_fs.split(":")[1]
            new_root_fs = (
                f"preloaded+layer:{stack}"
                f"?layer={quote_plus(layer.url, safe='')}"
                f"&layer_path={quote_plus(layer.destination_path, safe='')}"
                f"&layer_digest={quote_plus(layer.digest_value, safe='')}"
            )
            continue
        remaining.append(layer)

    if new_root_fs is None:
        return root_fs, layers
    return new_root_fs, remaining


def lrp_container_guid(process_guid: str, instance_guid: str) -> str:
    """Return the container guid of an LRP instance, which is its instance guid.

    Raises TypeError when either guid is not a string.
    """
    for label, value in (("process_guid", process_guid), ("instance_guid", instance_guid)):
        if not isinstance(value, str):
            raise TypeError(f"{label} must be a string, not {type(value).__name__}")
    return instance_guid


def convert_port_mappings(container_ports: Iterable[int]) -> list[PortMapping]:
    """Map desired container ports to executor port mappings (16-bit ports)."""
    return [PortMapping(container_port=port & 0xFFFF) for port in container_ports]


def convert_cached_dependency(dependency: Mapping[str, Any]) -> CachedDependency:
    """Build an executor cached dependency from its model mapping."""
    return CachedDependency(
        name=dependency.get("name", ""),
        source=dependency.get("from", ""),
        destination=dependency.get("to", ""),
        cache_key=dependency.get("cache_key", ""),
        log_source=dependency.get("log_source", ""),
        checksum_value=dependency.get("checksum_value", ""),
        checksum_algorithm=dependency.get("checksum_algorithm", ""),
    )


def convert_cached_dependencies(
    dependencies: Iterable[Mapping[str, Any]],
) -> list[CachedDependency]:
    return [convert_cached_dependency(dependency) for dependency in dependencies]


def convert_volume_mount(spec: VolumeMountSpec) -> VolumeMount:
    """Convert a requested volume mount, decoding its JSON mount config."""
    config: Optional[dict[str, Any]] = None
    if spec.mount_config:
        try:
            decoded = json.loads(spec.mount_config)
        except json.JSONDecodeError as exc:
            raise VolumeMountError(str(exc)) from exc
        if decoded is not None and not isinstance(decoded, dict):
            raise VolumeMountError("mount config is not a JSON object")
        config = decoded

    if spec.mode == "r":
        mode = BindMountMode.RO
    elif spec.mode == "rw":
        mode = BindMountMode.RW
    else:
        raise VolumeMountError("unrecognized volume mount mode")

    return VolumeMount(
        driver=spec.driver,
        volume_id=spec.volume_id,
        container_path=spec.container_dir,
        mode=mode,
        config=config,
    )


def convert_volume_mounts(specs: Iterable[VolumeMountSpec]) -> list[VolumeMount]:
    return [convert_volume_mount(spec) for spec in specs]


def convert_log_rate_limit(bytes_per_second: Optional[int]) -> int:
    """An absent log rate limit means unlimited, written as -1."""
    if bytes_per_second is None:
        return -1
    return bytes_per_second