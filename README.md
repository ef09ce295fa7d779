# codex-relay

Building blocks for a relay that spreads requests across codex accounts: it
speaks the codex `/responses` protocol upstream and can present an
OpenAI-compatible chat-completions interface downstream.

## What is included

- **Error classification** (`codex_relay.error_class`)
  - `classify(status)` maps an upstream HTTP status to an `ErrorKind`:
    `AUTH`, `QUOTA`, `NOT_FOUND`, `TRANSIENT`, `NETWORK` or `CLIENT`.
    `None` means the request failed before a status arrived, and gives `NETWORK`.
  - `classify_with_body(status, body_snippet)` keeps a 404 as `NOT_FOUND` only
    when the body mentions the model or that something is not supported.
    Any other 404 becomes `TRANSIENT`.
  - `ErrorKind.label()` gives the short lower-case name.
  - `quota_backoff(prev_level)` returns `(timedelta, next_level)`. The
    cooldown starts at 1 second, doubles with each level and stops growing at
    30 minutes.
- **Request translation**
  (`codex_relay.translator.request.translate_request(model, openai_body, stream)`)
  - Turns an OpenAI ChatCompletion body (bytes or str) into a codex
    `/responses` body, returned as a dict.
  - Covers messages, system-to-developer roles, tool messages, assistant tool
    calls, tools and `tool_choice`.
  - Covers images and files in user messages, `response_format`,
    `text.verbosity` and `reasoning_effort`, which defaults to `medium`.
- **Response translation**
  - `codex_relay.translator.response_stream.StreamTranslator`: `push(event)`
    returns the `chat.completion.chunk` dicts for one codex event. You add the
    SSE framing yourself. The `response_id` and `last_usage` properties expose
    what the translator has seen so far.
  - `codex_relay.translator.response_aggregate.Aggregator`: `push(event)`
    collects events. `finalize()` builds one `chat.completion` dict, and you
    can call it even when the stream ended early. `is_completed()` reports
    whether `response.completed` arrived.
  - Both restore shortened tool names from the original request. Both drop a
    generated image that repeats the one last seen for the same item.
  - `mime_from_codex_format` and `mapped_usage` are the helpers they share.
- **Tool names** (`codex_relay.translator.tool_names`)
  - `shorten_name_if_needed` shortens a tool name to 64 bytes.
  - `build_short_name_map` gives every name a distinct short name.
  - `build_reverse_map_from_openai` maps short names back to the originals.
- **Model catalog** (`codex_relay.models_catalog`)
  - `plan_key_for(plan)` maps a plan name such as `plus` or `team` to a catalog
    key. Unknown plans map to `codex-pro`.
  - `PlanCatalog.from_json` and `PlanCatalog.load` read a JSON object that maps
    each plan key to a list of model objects.
  - The catalog can build an OpenAI-style model list (`build_simple_list`) or
    the full codex-client response (`build_codex_client_response`).
- **HTTP clients per proxy** (`codex_relay.clients`)
  - `ProxiedClients` caches one `httpx.Client` per proxy URL. The empty URL
    gives a direct client, and environment proxy settings are ignored.
  - `invalidate(proxy_url)` drops the cached client for that URL, and `close()`
    closes them all.
  - `build_client(proxy_url)` raises `ValueError` for a proxy URL it cannot
    use.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
import json

from codex_relay.error_class import ErrorKind, classify_with_body
from codex_relay.translator.request import translate_request
from codex_relay.translator.response_aggregate import Aggregator

body = json.dumps({
    "model": "gpt-5-codex",
    "messages": [{"role": "user", "content": "hi"}],
}).encode()

codex_body = translate_request("gpt-5-codex", body, True)
assert codex_body["reasoning"]["effort"] == "medium"

agg = Aggregator("gpt-5-codex", body)
agg.push({"type": "response.created", "response": {"id": "resp_1", "created_at": 1}})
agg.push({"type": "response.output_text.delta", "delta": "Hello"})
agg.push({"type": "response.completed",
          "response": {"usage": {"input_tokens": 3, "output_tokens": 1, "total_tokens": 4}}})
result = agg.finalize()
assert result["choices"][0]["message"]["content"] == "Hello"
assert result["usage"] == {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4}

assert classify_with_body(404, '{"detail":"Not Found"}') is ErrorKind.TRANSIENT
```

## What this package does not do

This is a library of parts, not a running relay:

- It has no HTTP server and no command to start one.
- It does not pick accounts or refresh tokens.
- It has no persistent storage: no account database, proxy list or request
  log. The `codex_relay.store` package is empty.
- It ships no model catalog data. Pass your own JSON to `PlanCatalog`.