"""
MQTT Publishing

Optional sink that publishes each parsed status document as JSON. Publishing
never runs on the request path: documents are handed to a single background
worker and any failure is logged there.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional
from urllib.parse import urlparse

import paho.mqtt.client as mqtt

from .exceptions import ConfigurationError
from .models import TelemetryDocument
from .settings import ProxySettings

logger = logging.getLogger(__name__)

DEFAULT_MQTT_PORT = 1883
DEFAULT_MQTTS_PORT = 8883
PUBLISH_TIMEOUT_SECONDS = 10


def parse_broker_address(broker: str) -> tuple[str, int, bool]:
    """Split a broker address like ``tcp://host:1883`` into its parts.

    Accepts tcp://, mqtt://, ssl://, tls://, mqtts:// or a bare host[:port].

    Returns:
        (host, port, use_tls)

    Raises:
        ConfigurationError: If the address has no host or an unknown scheme
    """
    if "://" not in broker:
        broker = f"tcp://{broker}"
    parsed = urlparse(broker)

    scheme = parsed.scheme.lower()
    if scheme in ("tcp", "mqtt"):
        use_tls = False
    elif scheme in ("ssl", "tls", "mqtts"):
        use_tls = True
    else:
        raise ConfigurationError(f"Unsupported MQTT broker scheme: {scheme}")

    try:
        port = parsed.port
    except ValueError as e:
        raise ConfigurationError(f"Invalid port in MQTT broker address: {broker}") from e
    if not parsed.hostname:
        raise ConfigurationError(f"MQTT broker address has no host: {broker}")

    return parsed.hostname, port or (DEFAULT_MQTTS_PORT if use_tls else DEFAULT_MQTT_PORT), use_tls


class MQTTPublisher:
    """Publishes status documents to an MQTT topic."""

    def __init__(self, settings: ProxySettings):
        """Initialize publisher.

        Args:
            settings: Proxy settings with the mqtt_* fields filled in
        """
        self.host, self.port, self.use_tls = parse_broker_address(settings.mqtt_broker)
        self.topic = settings.mqtt_topic
        self.qos = settings.mqtt_qos
        self.retained = settings.mqtt_retained

        self.client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=settings.mqtt_client_id,
        )
        if settings.mqtt_user:
            self.client.username_pw_set(settings.mqtt_user, settings.mqtt_password)
        if self.use_tls:
            self.client.tls_set()
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.error(f"Failed to connect to MQTT broker {self.host}:{self.port}: {reason_code}")
            return
        logger.info(f"Connected to MQTT broker {self.host}:{self.port}")

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.warning(f"MQTT connection lost: {reason_code}")

    def connect(self) -> None:
        """Start the network loop and connect in the background.

        paho reconnects on its own after the first attempt.
        """
        self.client.connect_async(self.host, self.port, keepalive=60)
        self.client.loop_start()

    def close(self) -> None:
        self.client.disconnect()
        self.client.loop_stop()

    def publish(self, document: TelemetryDocument) -> None:
        """Publish one document, blocking until the broker acknowledges.

        Documents are dropped while the client is disconnected.

        Raises:
            RuntimeError: If the publish fails
        """
        if not self.client.is_connected():
            logger.debug("MQTT not connected, dropping status update")
            return

        info = self.client.publish(self.topic, document.to_json(), qos=self.qos, retain=self.retained)
        info.wait_for_publish(timeout=PUBLISH_TIMEOUT_SECONDS)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise RuntimeError(f"Failed to publish to MQTT: {mqtt.error_string(info.rc)}")


class PublishDispatcher:
    """Runs publishes on a background worker so callers never wait."""

    def __init__(self, publisher: Optional[MQTTPublisher] = None):
        self.publisher = publisher
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mqtt-publish")

    @property
    def enabled(self) -> bool:
        return self.publisher is not None

    def submit(self, document: TelemetryDocument) -> Optional[Future]:
        """Queue a document for publishing; a no-op without a publisher."""
        if self.publisher is None:
            return None
        future = self._executor.submit(self.publisher.publish, document)
        future.add_done_callback(self._log_failure)
        return future

    @staticmethod
    def _log_failure(future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error(f"MQTT publish failed: {error}")

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
        if self.publisher is not None:
            self.publisher.close()


def create_dispatcher(settings: ProxySettings) -> PublishDispatcher:
    """Build the dispatcher, connecting to MQTT when a broker is configured."""
    if not settings.mqtt_enabled:
        logger.info("MQTT publishing disabled (MQTT_BROKER not set)")
        return PublishDispatcher()

    publisher = MQTTPublisher(settings)
    publisher.connect()
    logger.info(f"MQTT publishing to topic '{publisher.topic}' on {publisher.host}:{publisher.port}")
    return PublishDispatcher(publisher)
