# opskit

Small building blocks for instrumenting and running services. The package uses
only the standard library.

- `opskit.metric_types`: `Counter` (unsigned 64-bit, wraps on overflow), `Gauge`
  (signed 64-bit, wraps on overflow and underflow), `Lazy`, `NullMetric`, and the
  `Value` / `ValueKind` readings.
- `opskit.metadata`: `Metadata`, an immutable string-to-string mapping attached
  to a metric.
- `opskit.entry`: `MetricEntry`, `Format` (`SIMPLE`, `PROMETHEUS`) and
  `default_formatter`.
- `opskit.registry`: the registry of declared and dynamic metrics, with
  `metrics()`, `MetricBuilder`, `DynPinnedMetric` and `DynBoxedMetric`.
- `opskit.declare`: `declare_metric` and the `metric` decorator.
- `opskit.ratelimit`: a thread-safe token-bucket `Ratelimiter` and its `Builder`.
- `opskit.ringlog`, `opskit.logroutes`, `opskit.logoutputs` and
  `opskit.logformat`: queued logging that plugs into the standard `logging`
  module.
- `opskit.switchboard`: `Queues`, which route tracked items between two groups of
  threads.

## Installation

```
pip install .
```

## Metrics

Declare a metric that stays registered for the life of the process:

```python
from opskit.declare import metric, declare_metric
from opskit.metric_types import Counter, Gauge

@metric(name="requests", description="requests served", metadata={"instance": "a"})
def requests():
    return Counter()

requests.increment()          # `requests` is now the Counter itself

in_flight = declare_metric(Gauge(), "in_flight")
```

If you leave out `name`, the metric takes the name of the decorated function.
Metadata keys must be unique strings, and `ValueError` is raised on a duplicate.
The keys are stored in sorted order.

Register a metric dynamically and remove it again when you close it:

```python
from opskit.registry import MetricBuilder, metrics
from opskit.entry import Format

with MetricBuilder("jobs").metadata("queue", "main").build(Counter()) as jobs:
    jobs.increment()
    for entry in metrics():
        print(entry.formatted(Format.PROMETHEUS), entry.metric.reading())
```

`metrics()` returns a snapshot. Iterating it yields the declared entries first and
then the dynamic ones. `static_metrics()` and `dynamic_metrics()` give each list
separately. Registering the same dynamic metric a second time replaces its
entry.

`Format.PROMETHEUS` renders the name with labels, for example
`requests{instance="a"}`. `Format.SIMPLE` renders the bare name. You can pass
your own formatter, a function `(entry, format) -> str`, to `MetricBuilder.formatter`,
`declare_metric` or `metric`.

`lazy_counter()` and `lazy_gauge()` return `Lazy` metrics. A `Lazy` metric
reports itself as disabled, with a reading of `None`, until it is first used.

## Rate limiting

```python
from datetime import timedelta
from opskit.ratelimit import Ratelimiter, RateLimited

limiter = (
    Ratelimiter.builder(1000, timedelta(hours=1))
    .max_tokens(1000)
    .initial_available(1000)
    .build()
)

try:
    limiter.try_wait()
except RateLimited as exc:
    print("retry in", exc.retry_after, "seconds")
```

You can give intervals as a `timedelta` or as a number of seconds. The limiter
starts with no tokens and a burst size of one, unless you set otherwise.
Invalid settings raise subclasses of `RatelimitError`: `MaxTokensTooLow`,
`RefillAmountTooHigh`, `AvailableTokensTooHigh` and `RefillIntervalTooLong`.
You can change the settings at runtime with `set_refill_interval`,
`set_refill_amount`, `set_max_tokens` and `set_available`.

## Logging

```python
import logging
from opskit.ringlog import LogBuilder, LevelFilter
from opskit.logoutputs import Stdout

drain = LogBuilder().output(Stdout()).level_filter(LevelFilter.INFO).build().start()
logging.getLogger("app").info("hello")
drain.flush()
```

`start()` installs the logger on the root logger and returns the `Drain`. Only
one logger can be installed, and a second `start()` raises `RuntimeError`.
Messages are formatted and put on a bounded queue without blocking. When the
queue is full, new messages are dropped. Call `drain.flush()` regularly, outside
any critical path, to write the queued messages to the output.

The builders are:

- `LogBuilder`: sends every message to one output.
- `SamplingLogBuilder` (in `opskit.logroutes`): logs one in every N messages.
  The default is N = 100.
- `MultiLogBuilder`: routes each record by the name of its logger to another
  `RingLog`. Records with no matching target go to the `default` log, or are
  dropped when there is no default.
- `NopLogBuilder`: drops everything.

The outputs are `Stdout`, `Stderr` and `FileOutput(active, backup, max_size)`.
On each flush, `FileOutput` checks the size of the live file. Once it reaches
`max_size` bytes, the file is moved to the backup path and a new live file is
started.

The formats are `default_format` (`<time> <LEVEL> [<logger>] <message>`) and
`klog_format` (`<time> <message>`).

The logging module keeps its own counters, such as `log_write`, `log_drop` and
`log_flush`. They are declared metrics and appear in `metrics()` once
`opskit.ringlog` has been imported.

`fatal(message, *args)` logs at error level and then raises `SystemExit(1)`.

## Switchboard

```python
from opskit.switchboard import Queues, EventWaker

waker = EventWaker()
(a,), (b,) = Queues.new([waker], [waker], capacity=1024)

a.try_send_to(0, 1)
item = b.try_recv()           # TrackedItem(sender=0, item=1)
b.try_send_any("apple")
a.try_send_all("orange")
a.wake()                      # wake receivers that were sent to
```

A send to a full queue raises `QueueFull`, and the exception holds the unsent
item. `try_recv_all()` returns every item that is pending.

## What is not included

There are no histogram metrics and no image rendering of latency data. The
package provides no command-line program or server. Metrics are kept in
memory and are not exported or stored anywhere. To expose them, read
`metrics()` from your own code.

## Testing

```
pip install .[test]
pytest
```