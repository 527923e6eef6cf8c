"""Maps a DeviceState onto prometheus metrics.

Rather than a pile of module level Gauge() objects that the scrape loop pokes at, the collector holds on to
the most recent good snapshot and builds the metric families from it when prometheus asks.
That gets us two things:
    - channels that disappear from the modem also disappear from /metrics
    - a failed scrape drops the snapshot so we never serve stale channel data; only `up` and the meta metrics remain

The collector registers itself on whatever registry it's handed; nothing here touches the global REGISTRY.
"""

from collections import Counter as Tally

from prometheus_client import CollectorRegistry, Counter, Summary, disable_created_metrics
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, InfoMetricFamily
from util.const import DOWNSTREAM, UPSTREAM

from arris_cm.models import DeviceState

# By default, client will automatically create a "_created" meta metric for
#   each metric defined below.
# Having the unix epoch time of when the metric was created isn't that useful for us
#   so we'll disable it.
disable_created_metrics()


METRICS_NS = "sb8200"
META_NS = "meta"

CHANNEL_LABELS = ["channel_id", "type"]


class ModemCollector:
    """Custom collector fed by the poll loop."""

    def __init__(self, registry: CollectorRegistry, namespace: str = METRICS_NS):
        self.namespace = namespace
        # (up, snapshot) swapped as one object; the exposition thread reads it once per collect()
        self._snapshot: tuple[bool, DeviceState | None] = (False, None)

        # summary comes with both a count and a sum so we don't need to count the number of scrapes ourselves
        self.scrape_duration = Summary(
            f"{META_NS}_scrape_duration_seconds",
            "Time spent on a full login + fetch + parse cycle",
            registry=registry,
        )
        # Label is the exception class; bounded by what's in err.exceptions
        self.scrape_errors = Counter(
            f"{META_NS}_scrape_errors",
            "Count of failed scrapes by error type",
            labelnames=["error"],
            registry=registry,
        )
        registry.register(self)

    def update(self, state: DeviceState) -> None:
        self._snapshot = (True, state)

    def mark_failed(self, error: Exception) -> None:
        # Never serve the previous snapshot after a failure
        self._snapshot = (False, None)
        self.scrape_errors.labels(type(error).__name__).inc()

    def _name(self, *parts: str) -> str:
        return "_".join((self.namespace, *parts))

    def collect(self):
        up, state = self._snapshot
        yield GaugeMetricFamily(
            self._name("up"), "Was the last data scrape successful?", value=1 if up else 0
        )

        if state is None:
            return

        yield GaugeMetricFamily(
            self._name("connected"),
            "Is the modem's connection up (connectivity state)?",
            value=1 if state.connected else 0,
        )
        yield GaugeMetricFamily(
            self._name("uptime_seconds"),
            "Count of seconds since modem was last booted.",
            value=state.uptime_seconds,
        )
        yield InfoMetricFamily(
            self.namespace,
            "Metadata about this modem.",
            value={
                "host": state.host,
                "hwversion": state.hardware_version,
                "swversion": state.software_version,
                "mac": state.mac_address,
                "serial": state.serial_number,
                "docsis_version": state.docsis_version,
            },
        )

        lock = GaugeMetricFamily(
            self._name("channel", "lock"), "Is the channel locked?", labels=CHANNEL_LABELS
        )
        power = GaugeMetricFamily(
            self._name("channel", "power"), "Power level (dBmV)", labels=CHANNEL_LABELS
        )
        snr = GaugeMetricFamily(
            self._name("channel", "snr"), "SNR/MER rate (dB)", labels=CHANNEL_LABELS
        )
        corrected = CounterMetricFamily(
            self._name("channel", "corrected"),
            "Corrected errors, counter resets to 0 on modem reboot",
            labels=CHANNEL_LABELS,
        )
        uncorrectable = CounterMetricFamily(
            self._name("channel", "uncorrectable"),
            "Uncorrectable errors, counter resets to 0 on modem reboot",
            labels=CHANNEL_LABELS,
        )
        meta = GaugeMetricFamily(
            self._name("channel", "info"),
            "Channel metadata",
            labels=["channel_id", "modulation", "frequency", "width", "type"],
        )
        # Cheap summary of the lock columns; handy when you don't want per-channel cardinality
        lock_counts = GaugeMetricFamily(
            self._name("channel", "lock_status_count"),
            "Count of channels per lock status.",
            labels=["type", "lock_status"],
        )

        for channel in state.downstream:
            labels = [channel.channel_id, DOWNSTREAM]
            lock.add_metric(labels, 1 if channel.locked else 0)
            power.add_metric(labels, channel.power_dbmv)
            snr.add_metric(labels, channel.snr_db)
            corrected.add_metric(labels, channel.corrected)
            uncorrectable.add_metric(labels, channel.uncorrectable)
            meta.add_metric(
                [channel.channel_id, channel.modulation, channel.frequency, "", DOWNSTREAM], 1
            )

        for channel in state.upstream:
            labels = [channel.channel_id, UPSTREAM]
            lock.add_metric(labels, 1 if channel.locked else 0)
            power.add_metric(labels, channel.power_dbmv)
            meta.add_metric(
                [
                    channel.channel_id,
                    channel.channel_type,
                    channel.frequency,
                    channel.width,
                    UPSTREAM,
                ],
                1,
            )

        for direction, channels in ((DOWNSTREAM, state.downstream), (UPSTREAM, state.upstream)):
            tally = Tally("locked" if c.locked else "not_locked" for c in channels)
            for status, count in sorted(tally.items()):
                lock_counts.add_metric([direction, status], count)

        yield from (lock, power, snr, corrected, uncorrectable, meta, lock_counts)
