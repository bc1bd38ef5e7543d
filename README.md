# statskit

A small library for collecting service stats for monitoring dashboards. All
backends share one client interface (`statskit.client_base.Client`):

- `statsd://host:port/prefix`: counters, gauges and timings (in milliseconds)
  sent to a StatsD server over UDP (`StatsDClient`). If you leave out the
  address, the client uses `:8125`. Delivery is best effort. Send errors are
  ignored.
- `prometheus://namespace`: counters, gauges and histograms kept in an
  in-process registry (`PrometheusClient`). Every metric name is prefixed with
  `<namespace>_`.
- `log://`: every metric is passed to the library log handler (`LogClient`).
- `memory://`: metrics are kept in memory (`MemoryClient`). This is useful in
  tests.
- `noop://`: events are discarded (`NoopClient`).

## Installation

```
pip install statskit
```

## Creating a client

```python
from statskit.factory import new_client, UnknownClientError

client = new_client("memory://")
```

`new_client` raises `UnknownClientError` when it does not know the scheme.

The query option `unicode` accepts `1`, `t`, `T`, `true`, `True` or `TRUE`.
Any other value turns it off. When it is on, non-ASCII metric parts are
transliterated to ASCII and each transliterated part gets the `-u-` prefix. The
StatsD and log clients apply it to every metric. The memory client applies it
only to HTTP request metrics and always transliterates other metrics. The
Prometheus client never transliterates.

## Tracking operations

```python
from statskit.bucket import MetricOperation

timer = client.build_timer().start()
# ... do the work ...
client.track_operation("orders", MetricOperation("create", "api"), timer, True)

client.track_metric("cache", MetricOperation("hit"))
client.track_metric_n("queue", MetricOperation("pushed"), 5)
client.track_state("workers", MetricOperation("busy"), 3)
```

`MetricOperation` keeps at most three parts. Missing parts are filled with
`-`. The StatsD, log and memory backends build dot-separated names:

- `orders.create.api.-`
- `orders-ok.create.api.-`
- `total.orders`
- `total.orders-ok`

In these names, underscores are doubled and dots are replaced with underscores.

The Prometheus backend builds underscore-joined names such as
`orders_create_api` and `total_orders`. It drops empty parts, `-` and `_`. It
labels operations with `success`, and timed operations also feed a histogram
named `<name>_seconds`.

A `MemoryClient` exposes what it has collected:

- `timer_metrics`: a list of `TimerMetric(bucket, elapsed)`
- `count_metrics`
- `state_metrics`

`close()` clears all three.

## Exposing Prometheus metrics

`PrometheusClient.handler()` returns a WSGI application. It renders the
client's registry in the Prometheus text format. The other clients return an
application that answers `405 Method Not Allowed`.

By default every Prometheus client shares `statskit.registry.REGISTRY`. To keep
a client's metrics separate, pass `registry=Registry()` to the client.

## HTTP requests

Wrap a WSGI application with `StatsMiddleware`:

```python
from statskit.middleware import StatsMiddleware

app = StatsMiddleware(app, client)
```

The middleware tracks each request when the server closes the response. It
uses the section `request`, or the section set with
`set_http_request_section`. A request counts as a success when its status is
below 400.

The metric operation is built from the lower-cased method and the first two
path segments. Inside the wrapped application, and while its response is being
iterated, `statskit.context.current_client()` returns the tracking client.
Elsewhere it returns a `NoopClient`. You can also set the current client
yourself with the `statskit.context.with_client(client)` context manager.

Paths with IDs at their second level can be folded into a single metric by
passing a callback to `set_http_metric_callback`:

```python
from statskit.section_tests import (
    SecondLevelIDConfig,
    new_has_id_at_second_level_callback,
    parse_sections_tests_map,
)

config = SecondLevelIDConfig(
    has_id_at_second_level=parse_sections_tests_map("users:true:orders:numeric"),
    auto_discover_threshold=25,
    auto_discover_white_list=["static"],
)
client.set_http_metric_callback(new_has_id_at_second_level_callback(config))
```

### Section tests

The built-in section tests are `true`, `numeric` and `not_empty`. You can add
your own with `register_section_test`.

`parse_sections_tests_map` raises an error in two cases:

- `InvalidFormatError` when the pairs do not add up.
- `UnknownSectionTestError` when a test name is not registered.

### Auto-discovery

When `auto_discover_threshold` is above zero, auto-discovery is on. Once a
first path segment has had that many distinct second segments, those second
segments are replaced with `-id-`. The replacement is logged with a
`LooksLikeIDError`. Segments listed in `auto_discover_white_list` are never
folded this way.

## Counting logged errors

```python
import logging
from statskit.hooks import StatsLoggingHandler

logging.getLogger().addHandler(StatsLoggingHandler(client, "errors"))
```

Every `ERROR` or `CRITICAL` record is tracked as a metric in the given section.
The metric is named after the record's lower-cased level.

## Library logging

The library reports its own events through a handler. By default the handler
writes tab-separated lines to stderr. You can replace it:

```python
from statskit.log import set_handler

set_handler(lambda msg, fields, err: print(msg, fields, err))
```

`set_handler(None)` restores the default.

## What it does not do

statskit is a library only:

- It has no command-line tool.
- It does not run an HTTP server. To serve the Prometheus endpoint or the
  middleware-wrapped application, mount the WSGI application in a server of
  your choice.
- It does not persist metrics. Everything except what is sent to StatsD lives
  in process memory.