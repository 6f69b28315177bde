# rumba

This package holds building blocks for the server side of a documentation
site's member features:

- request tags,
- StatsD metrics,
- settings loading,
- collection and browser-compatibility models,
- parsing of the data files used to sync browser-compatibility updates.

It uses only the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `rumba.helpers`

Converts between JSON values and UTC datetimes.

- `deserialize_string_or_vec(value)` returns a list whether it is given one value or a list of values. `None` raises `ValueError`.
- `utc_from_seconds_f(value)` reads seconds since the epoch and keeps millisecond precision.
- `utc_from_milliseconds(value)` reads integer milliseconds since the epoch.
- `utc_to_milliseconds(dt)` goes the other way. Naive datetimes are taken as UTC.
- `to_utc(dt)` renders a datetime as an RFC 3339 string ending in `Z`, such as `1970-01-01T00:00:00Z`. `maybe_to_utc` does the same and passes `None` through.

### `rumba.util`

- `normalize_uri(text)` lower-cases a URI and strips the whitespace around it.

### `rumba.fxa`

- The `Subscription` enum is ordered from `CORE` to `MDN_PLUS_10Y`, with `UNKNOWN` last.
- `parse_subscription(value)` maps unknown names to `UNKNOWN`.
- `Subscription.to_db()` stores `UNKNOWN` as `CORE`.
- The exceptions are `FxaError` and its subclasses `UserInfoError`, `UserInfoBadStatusError`, `UserInfoDeserializeError` and `IdTokenMissingError`.

### `rumba.tags`

- `parse_user_agent(agent)` returns a `UserAgentInfo` together with an OS family and a browser family for use as metric tags. Families outside a small fixed list become `"Other"`.
- `Tags.from_request_head(headers, method, uri)` builds the `tags` and `extra` maps.
- `Tags` also has `with_tags`, `get` (which returns `"None"` for a missing label), `extend`, `tag_tree`, `extra_tree` and `to_json`. `to_json` leaves out empty values.

### `rumba.log`

- `init_logging(json_output)` installs one root handler:
  - with `json_output` true, MozLog JSON lines (`JsonLogFormatter`) go to stdout;
  - otherwise, readable lines go to stderr.
- The level comes from the `RUMBA_LOG` environment variable (`trace`, `debug`, `info`, `warn`, `error`, `critical` or `off`). The default is `info`.
- `reset_logging()` replaces that handler with one that discards records.

### `rumba.settings`

`load_settings(path=None, environ=None)` reads a TOML or JSON settings file.

- When no path is given, it uses the `MDN_SETTINGS` variable, or `.settings.toml` if that is not set.
- It also tries the path with `.toml` or `.json` appended.
- It then applies environment overrides of the form `MDN__SECTION__KEY`, matched case-insensitively.
- It returns a frozen `Settings` with the sections `db`, `server`, `auth`, `application`, `search`, `logging`, `metrics` and an optional `sentry`.
- Every value is type- and range-checked. The `auth.cookie_key` must be base64 for exactly 64 bytes.
- Problems raise `SettingsError`.

`Settings.from_mapping(data)` builds the same object from nested dictionaries.

### `rumba.metrics`

- `StatsdClient(prefix, sink)` formats StatsD lines with DogStatsD-style tags. It hands them to a `NopSink`, which discards them, or a `UdpSink`, which sends non-blocking UDP.
- `Metrics` binds a client to request `Tags`. It offers:
  - `incr`, `incr_with_tags`, `count` and `count_with_tags`;
  - `start_timer` and `finish` (also run when used as a context manager);
  - `Metrics.noop()`.
- Send errors are logged, not raised.
- `metrics_from_opts(settings)` builds a client from `MetricsSettings`. It uses UDP when `statsd_host` is set and `NopSink` otherwise.

### `rumba.bcd_model`

- `Status`, `Event` and `parse_events` read the aggregated `compat` JSON.
- `BcdUpdate.from_query(row)` builds one browser release with its events.
- `MultipleCollection.to_json()` serialises a collection record.

### `rumba.pagination`

- `count_pages(total, per_page=5)` returns how many pages the rows need.
- `page_offset(page, per_page=5)` returns the row offset of a page. A missing or non-positive page means the first page.

### `rumba.bcd_sync`

- `load_json(path)` reads a JSON file.
- `parse_browsers`, `parse_features` and `parse_updates` turn the browsers, features and added/removed documents into `BrowserRow`, `ReleaseRow`, `FeatureRow` and `UpdateEvent` values.
- `batched(items, size=1000)` splits rows into batches.
- `build_path_map(metadata)` pairs compat paths with their document URL and short title.
- `fallback_for_path(path, path_map)` finds the nearest parent path that has metadata.
- Malformed data raises `SyncError`.

## Example

```python
from rumba.tags import Tags

tags = Tags.from_request_head(
    {"User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:72.0) Gecko/20100101 Firefox/72.0"},
    "GET",
    "/1.5/42/storage/meta/global",
)
print(tags.tag_tree())
# {'ua.browser.family': 'Firefox', 'ua.browser.ver': '72.0', 'ua.name': 'Firefox',
#  'ua.os.family': 'Windows', 'ua.os.ver': 'NT 10.0', 'uri.method': 'GET'}
```

## What this package does not do

There is no HTTP server, API routes, authentication flow or database layer here, and no command to start a service.

- `rumba.bcd_sync` prepares rows but does not store them. It does not fetch site metadata over the network either: the caller supplies the documents and writes the results.
- `rumba.bcd_model` and `rumba.pagination` describe and page query results but run no queries.