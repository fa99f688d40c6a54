# flagdcore

This package is the evaluation core of a feature flag service. It reads flag
definitions from JSON and resolves flags against an evaluation context, using
JSON Logic targeting rules. It also builds the response payloads for the
OpenFeature Remote Evaluation Protocol (OFREP).

## Modules

- `flagdcore.model`
  - `Flag` has `from_dict` and `to_dict`.
  - `EvaluationError` carries one of the error codes `FLAG_NOT_FOUND`, `PARSE_ERROR`, `TYPE_MISMATCH`, `GENERAL`, `FLAG_DISABLED` or `INVALID_CONTEXT`.
  - `get_error_message(code)` returns a readable message for a code.
  - The module also holds the evaluation reasons and `StateChangeNotification` / `StateChangeNotificationType`.
- `flagdcore.evaluator`
  - `config_to_flag_definition(log, config)` parses a JSON configuration into a `Definition`, which holds flags and flag set metadata. Before parsing, `transpose_evaluators` replaces each `{"$ref": "<name>"}` with the matching entry from `$evaluators`. After parsing, `validate_default_variants` checks the default variants. Both steps raise `ValueError` when they fail.
  - `FlagStore` holds the flags and the flag set metadata.
  - `Resolver(store, logger)` has the methods listed below.
- `flagdcore.jsonlogic`
  - `JsonLogic` is a JSON Logic engine. `add_operator(name, func)` registers a custom operator. `apply(rule, data)` evaluates a rule and raises `JsonLogicError` when the rule cannot be applied.
- Targeting operators. The `Resolver` registers each of these with its engine:
  - `flagdcore.fractional.Fractional` registers as `fractional`. It does weighted bucketing with MurmurHash3. When no bucketing value is given, it buckets on the flag key joined to `targetingKey`.
  - `flagdcore.legacy_fractional.LegacyFractional` registers as the deprecated `fractionalEvaluation`. It does percentage bucketing with XXH3, and the percentages must sum to 100.
  - `flagdcore.semver.SemVerComparison` registers as `sem_ver`, with the operators `=`, `!=`, `<`, `<=`, `>`, `>=`, `^` and `~`. The module also provides `is_valid`, `compare_versions`, `major` and `major_minor`.
  - `flagdcore.string_comparison.StringComparison` registers as `starts_with` and `ends_with`.
- `flagdcore.hashing` provides `murmur3_32(data, seed)` and `xxh3_64(data)`.
- `flagdcore.flagd_properties` provides `set_flagd_properties` and `get_flagd_properties`. These handle the `$flagd` entry (`flagKey`, `timestamp`) that is added to the context before targeting runs.
- `flagdcore.ofrep`
  - Payload classes with `to_dict`: `EvaluationSuccess`, `EvaluationFailure`, `BulkEvaluationResponse`, `BulkEvaluationError` and `InternalError`.
  - `success_response_from` builds a success payload.
  - `evaluation_error_response_from` maps a failed resolution to an HTTP status (404 for a flag that is missing or disabled, otherwise 400) and an error payload.
  - `bulk_evaluation_response_from` builds a bulk response.
  - There are also context-error helpers.
- `flagdcore.certreloader`
  - `CertReloader(Config(key_path, cert_path, reload_interval))` loads a PEM certificate and key pair and checks that they match.
  - `get_certificate()` reloads the pair from disk once `reload_interval` seconds have passed. An interval of 0 turns reloading off.
  - Failures raise `CertificateLoadError`.
  - `load_key_pair` loads a pair on its own.
- `flagdcore.logger`
  - `Logger(logger, req_id_logging)` wraps a standard `logging.Logger`. Passing `None` gives a no-op logger.
  - `write_fields` stores `Field`s for a request ID. Those fields are then added to every `*_with_id` call for that request.
  - `with_fields` creates a child logger. The child shares the request field pool and adds its own fields.
  - `fatal` and `fatal_with_id` raise `SystemExit(1)` after logging.
  - `new_std_logger(level, log_format)` builds a logger that writes `json` or `console` lines to stderr.
- `flagdcore.service` provides `NotificationType`, `Notification` and `Configuration`.

## Resolving flags

These methods take `(req_id, flag_key, context)`:

- `resolve_boolean_value`
- `resolve_string_value`
- `resolve_int_value`
- `resolve_float_value`
- `resolve_object_value`

Each returns a `Resolution` with `value`, `variant`, `reason` and `metadata`. A failure raises `EvaluationError`.

Two methods report failures inside the result instead of raising:

- `resolve_as_any_value` returns an `AnyValue` whose `error` is set.
- `resolve_all_values(req_id, context)` resolves every flag that is not disabled and returns a list of `AnyValue` together with the flag set metadata.

The outcome of a resolution depends on the flag:

- A flag with no targeting rule resolves with reason `STATIC`.
- When targeting yields a known variant, the reason is `TARGETING_MATCH`.
- When targeting yields `null`, the flag falls back to its default variant with reason `DEFAULT`.

## Example

```python
from flagdcore.evaluator import Resolver, FlagStore, config_to_flag_definition
from flagdcore.logger import Logger

log = Logger(None, False)
definition = config_to_flag_definition(log, """
{
  "flags": {
    "new-checkout": {
      "state": "ENABLED",
      "variants": {"on": true, "off": false},
      "defaultVariant": "off",
      "targeting": {
        "if": [{"ends_with": [{"var": "email"}, "@example.com"]}, "on", null]
      }
    }
  }
}
""")

store = FlagStore(flags=definition.flags, metadata=definition.metadata)
resolver = Resolver(store, log)

result = resolver.resolve_boolean_value("req-1", "new-checkout", {"email": "user@example.com"})
print(result.value, result.variant, result.reason)   # True on TARGETING_MATCH
```

## What it does not do

The package is a library only:

- It has no command-line program and runs no server; `flagdcore.service.Configuration` only holds settings.
- It does not fetch or watch flag sources.
- It does not merge updates from several sources into a store. A `FlagStore` is filled directly, by assigning parsed flags to it.
- It does not validate configurations against a JSON schema.

## Running the tests

```
pip install -e .[test]
pytest
```