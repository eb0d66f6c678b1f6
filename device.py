"""
Caelum Device Wrapper - attaches cluster listeners to a zigpy device, decodes
its reports through the device definition and keeps the published state.
"""
import time
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from config import CaelumConfig
from device_definitions import Access, DeviceDefinition, WriteCommand, find_definition
from handlers.base import AttributeReport, ClusterListener, Decoded, cluster_name
from json_helpers import prepare_for_json

logger = logging.getLogger("device")

PublishCallback = Callable[[str, Dict[str, Any]], None]

# Home Assistant device classes for the published values
DEVICE_CLASSES = {
    "temperature": "temperature",
    "humidity": "humidity",
    "pressure": "pressure",
    "battery": "battery",
    "voltage": "voltage",
    "rainfall": "precipitation",
    "sleep_duration": "duration",
}


class CaelumDevice:
    """
    Wrapper around a zigpy device running Caelum firmware.
    Listeners are stored by (endpoint_id, cluster_id).
    """

    def __init__(
        self,
        zigpy_dev,
        definition: DeviceDefinition,
        publish_callback: Optional[PublishCallback] = None,
        write_timeout: float = 5.0,
    ):
        self.zigpy_dev = zigpy_dev
        self.ieee = str(zigpy_dev.ieee)
        self.definition = definition
        self.publish_callback = publish_callback
        self.write_timeout = write_timeout

        self.listeners: Dict[Tuple[int, int], ClusterListener] = {}
        self.state: Dict[str, Any] = {}
        self.last_seen = 0

        self._attach_listeners()

        logger.info(
            f"[{self.ieee}] Device wrapper created - Model: {definition.model}, "
            f"Revision: {definition.revision.name}, Listeners: {len(self.listeners)}"
        )

    def _attach_listeners(self):
        """Listen on every server cluster the definition knows how to decode."""
        self.listeners.clear()
        wanted = set(self.definition.cluster_ids)
        known_endpoints = set(self.definition.endpoints.values())

        for ep_id, ep in self.zigpy_dev.endpoints.items():
            if ep_id == 0:
                continue  # ZDO
            if ep_id not in known_endpoints:
                logger.debug(f"[{self.ieee}] Ignoring unknown EP{ep_id}")
                continue
            for cluster in ep.in_clusters.values():
                if cluster.cluster_id not in wanted:
                    continue
                self.listeners[(ep_id, cluster.cluster_id)] = ClusterListener(self, cluster)

    # ============================================================
    # INBOUND
    # ============================================================

    def handle_report(self, report: AttributeReport) -> Optional[Decoded]:
        """Decode one report and merge the result into state. None if unhandled."""
        decoded = self.definition.decode(report)
        if decoded is None:
            logger.debug(f"[{self.ieee}] Unhandled report: {report}")
            return None
        if decoded:
            self.update_state(decoded)
        return decoded

    def update_state(self, data: Dict[str, Any]):
        """Merge values into state and publish the ones that changed."""
        changed = {k: v for k, v in data.items() if self.state.get(k) != v}

        self.state.update(data)
        self.last_seen = int(time.time() * 1000)
        self.state["last_seen"] = self.last_seen

        if changed and self.publish_callback:
            changed["last_seen"] = self.last_seen
            self.publish_callback(self.ieee, prepare_for_json(changed))

    async def poll(self) -> Dict[str, Any]:
        """Read every listener's attributes and decode them as read responses."""
        logger.info(f"[{self.ieee}] Polling device...")
        results: Dict[str, Any] = {}

        for (ep_id, cluster_id), listener in self.listeners.items():
            try:
                report = await listener.poll(timeout=self.write_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"[{self.ieee}] Poll timed out for {cluster_name(cluster_id)} on EP{ep_id}")
                continue
            if report is None:
                continue
            decoded = self.handle_report(report)
            if decoded:
                results.update(decoded)

        return results

    # ============================================================
    # OUTBOUND
    # ============================================================

    def _get_cluster(self, endpoint_id: int, cluster_id: int):
        ep = self.zigpy_dev.endpoints.get(endpoint_id)
        if not ep:
            raise ValueError(f"EP {endpoint_id} not found")
        cluster = ep.in_clusters.get(cluster_id)
        if cluster is None:
            raise ValueError(f"Cluster 0x{cluster_id:04x} not found on EP {endpoint_id}")
        return cluster

    def build_write(self, name: str, value: Any) -> WriteCommand:
        """Validate a setting write; raises before anything reaches the radio."""
        return self.definition.build_write(name, value)

    async def write_setting(self, name: str, value: Any) -> Any:
        command = self.build_write(name, value)
        cluster = self._get_cluster(command.endpoint_id, command.cluster_id)

        logger.info(
            f"[{self.ieee}] Writing {name}={value} -> EP{command.endpoint_id} "
            f"{cluster_name(command.cluster_id)}.{command.attribute}"
        )
        async with asyncio.timeout(self.write_timeout):
            result = await cluster.write_attributes({command.attribute: command.value})

        self.update_state({name: value})
        return result

    async def configure(self) -> bool:
        """Bind clusters and configure attribute reporting from the definition."""
        logger.info(f"[{self.ieee}] Configuring device...")
        bound = set()
        ok = True

        for binding in self.definition.reporting_bindings():
            name = cluster_name(binding.cluster_id)
            try:
                cluster = self._get_cluster(binding.endpoint_id, binding.cluster_id)
                key = (binding.endpoint_id, binding.cluster_id)
                if key not in bound:
                    async with asyncio.timeout(self.write_timeout):
                        await cluster.bind()
                    bound.add(key)
                    logger.info(f"[{self.ieee}] Bound {name} on EP{binding.endpoint_id}")

                reporting = binding.reporting
                async with asyncio.timeout(self.write_timeout):
                    await cluster.configure_reporting(
                        binding.attribute,
                        reporting.min_interval,
                        reporting.max_interval,
                        reporting.change,
                    )
                logger.info(
                    f"[{self.ieee}] Configured reporting for {binding.attribute} on EP{binding.endpoint_id}: "
                    f"min={reporting.min_interval}s, max={reporting.max_interval}s, change={reporting.change}"
                )
            except asyncio.TimeoutError:
                logger.warning(f"[{self.ieee}] Configuration timed out for {name} on EP{binding.endpoint_id}")
                ok = False
            except Exception as e:
                logger.warning(f"[{self.ieee}] Failed to configure reporting for {binding.attribute}: {e}")
                ok = False

        return ok

    # ============================================================
    # DISCOVERY
    # ============================================================

    def get_discovery_configs(self) -> List[Dict[str, Any]]:
        """Home Assistant discovery records built from the definition's exposures."""
        device_info = {
            "identifiers": [self.ieee],
            "name": f"{self.definition.vendor} {self.definition.model}",
            "model": self.definition.model,
            "manufacturer": self.definition.vendor,
        }

        configs = []
        for expose in self.definition.exposes():
            settable = bool(expose.access & Access.SET)
            config: Dict[str, Any] = {
                "name": expose.name.replace("_", " ").capitalize(),
                "value_template": f"{{{{ value_json.{expose.property} }}}}",
            }
            if expose.unit:
                config["unit_of_measurement"] = expose.unit
            if expose.property in DEVICE_CLASSES:
                config["device_class"] = DEVICE_CLASSES[expose.property]
            if settable:
                if expose.value_min is not None:
                    config["min"] = expose.value_min
                if expose.value_max is not None:
                    config["max"] = expose.value_max
            else:
                config["state_class"] = "total_increasing" if expose.property == "rainfall" else "measurement"

            configs.append({
                "component": "number" if settable else "sensor",
                "object_id": expose.property,
                "unique_id": f"{self.ieee}_{expose.property}",
                "device": device_info,
                "config": config,
            })
        return configs

    def get_details(self) -> Dict[str, Any]:
        return prepare_for_json({
            "ieee": self.ieee,
            "model": self.definition.model,
            "vendor": self.definition.vendor,
            "revision": self.definition.revision,
            "state": self.state,
            "last_seen": self.last_seen,
            "exposes": [e.to_dict() for e in self.definition.exposes()],
        })


def create_device(
    zigpy_dev,
    config: CaelumConfig,
    publish_callback: Optional[PublishCallback] = None,
) -> CaelumDevice:
    """Pick the definition for this device's revision and wrap it."""
    ieee = str(zigpy_dev.ieee)
    definition = find_definition(zigpy_dev.model, config.revision_for(ieee))
    return CaelumDevice(
        zigpy_dev,
        definition,
        publish_callback=publish_callback,
        write_timeout=config.write_timeout,
    )
