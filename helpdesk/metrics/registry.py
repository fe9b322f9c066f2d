"""In-memory counters and distributions for automation and lifecycle activity."""
from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from time import perf_counter
from typing import Dict, Iterable, Iterator, Mapping, MutableMapping, Tuple

LabelValues = Tuple[str, ...]


class Metric:
    """Named metric keyed by an ordered tuple of label values."""

    kind = "untyped"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> None:
        self.name = name
        self.description = description
        self.label_names: Tuple[str, ...] = tuple(label_names or ())
        self._lock = Lock()

    def _key(self, labels: Mapping[str, str] | None) -> LabelValues:
        labels = labels or {}
        unexpected = set(labels) - set(self.label_names)
        if unexpected:
            raise ValueError(f"Metric '{self.name}' does not accept labels {sorted(unexpected)}")
        missing = [label for label in self.label_names if label not in labels]
        if missing:
            raise ValueError(f"Metric '{self.name}' is missing labels {missing}")
        return tuple(str(labels[label]) for label in self.label_names)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:  # pragma: no cover - interface
        raise NotImplementedError

    def value(self, **labels: str) -> Mapping[str, float]:
        """Return the recorded values for one label combination (empty when unseen)."""

        return self.snapshot().get(self._key(labels), {})


class Counter(Metric):
    kind = "counter"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._values: MutableMapping[LabelValues, float] = defaultdict(float)

    def inc(self, amount: float = 1.0, *, labels: Mapping[str, str] | None = None) -> None:
        if amount < 0:
            raise ValueError("Counters can only increase")
        key = self._key(labels)
        with self._lock:
            self._values[key] += amount

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        with self._lock:
            return {key: {"value": total} for key, total in self._values.items()}


@dataclass
class _Summary:
    count: int = 0
    total: float = 0.0
    max: float = 0.0

    def add(self, sample: float) -> None:
        self.count += 1
        self.total += sample
        self.max = max(self.max, sample)


class Distribution(Metric):
    """Count, sum and max of observed samples (durations, sizes)."""

    kind = "summary"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._values: Dict[LabelValues, _Summary] = defaultdict(_Summary)

    def observe(self, sample: float, *, labels: Mapping[str, str] | None = None) -> None:
        key = self._key(labels)
        with self._lock:
            self._values[key].add(sample)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        with self._lock:
            return {
                key: {"count": float(summary.count), "sum": summary.total, "max": summary.max}
                for key, summary in self._values.items()
            }


class MetricsRegistry:
    """Registry that holds metric instances by name."""

    def __init__(self) -> None:
        self._metrics: MutableMapping[str, Metric] = {}
        self._lock = Lock()

    def _register(self, metric_cls: type, name: str, description: str, label_names: Iterable[str] | None) -> Metric:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = metric_cls(name, description=description, label_names=label_names)
                self._metrics[name] = metric
        if not isinstance(metric, metric_cls):
            raise TypeError(f"Metric '{name}' already exists as a {metric.kind}")
        return metric

    def counter(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> Counter:
        return self._register(Counter, name, description, label_names)  # type: ignore[return-value]

    def distribution(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> Distribution:
        return self._register(Distribution, name, description, label_names)  # type: ignore[return-value]

    def metrics(self) -> Tuple[Metric, ...]:
        with self._lock:
            return tuple(self._metrics.values())

    @contextmanager
    def timed(self, name: str, *, labels: Mapping[str, str] | None = None) -> Iterator[None]:
        """Observe the wall time of the block into distribution ``name``."""

        metric = self.distribution(name)
        start = perf_counter()
        try:
            yield
        finally:
            metric.observe(perf_counter() - start, labels=labels)

    def render_prometheus(self) -> str:
        """Serialise all metrics in the Prometheus text exposition format."""

        lines: list[str] = []
        for metric in self.metrics():
            lines.append(f"# HELP {metric.name} {metric.description}")
            lines.append(f"# TYPE {metric.name} {metric.kind}")
            for label_values, values in sorted(metric.snapshot().items()):
                label_text = ""
                if label_values:
                    pairs = ",".join(
                        f'{name}="{value}"' for name, value in zip(metric.label_names, label_values)
                    )
                    label_text = "{" + pairs + "}"
                if "value" in values:
                    lines.append(f"{metric.name}{label_text} {values['value']}")
                else:
                    lines.append(f"{metric.name}_count{label_text} {values['count']}")
                    lines.append(f"{metric.name}_sum{label_text} {values['sum']}")
        return "\n".join(lines) + ("\n" if lines else "")
