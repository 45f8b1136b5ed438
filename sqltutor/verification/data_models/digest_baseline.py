# sqltutor/verification/data_models/digest_baseline.py
# DigestBaseline -- persisted record of expected replay output.
#
# The baseline is valid only while its recorded input digests match the
# current inputs. It is created or replaced only by the checksum gate's
# update mode; check mode reads it and never writes it.

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from sqltutor.core.exceptions import IntegrityViolationError
from sqltutor.core.integrity_layer import is_sha256_hex

_EXPECTED_FIELDS = (
    "policy_only_checksum_sha256",
    "replay_harness_version",
    "replay_policy_semantics_version",
    "sql_engage_policy_version",
)

BASELINE_DESCRIPTION: str = (
    "Replay checksum regression baseline. Enforce exact checksum only when "
    "fixture/policy input digests are unchanged."
)


def _malformed(detail: str, location: str) -> IntegrityViolationError:
    return IntegrityViolationError(
        f"{location}: {detail}",
        failure_type_id="DATA_CORRUPTION",
        context=location,
    )


@dataclass(frozen=True)
class ExpectedReplayOutput:
    """The replay output fields a baseline pins."""
    policy_only_checksum_sha256:     str
    replay_harness_version:          str
    replay_policy_semantics_version: str
    sql_engage_policy_version:       str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], location: str = "expected") -> "ExpectedReplayOutput":
        if not isinstance(data, Mapping):
            raise _malformed("must be an object", location)
        values = {}
        for name in _EXPECTED_FIELDS:
            value = data.get(name)
            if not isinstance(value, str) or not value:
                raise _malformed(f"missing {name}", f"{location}.{name}")
            values[name] = value
        if not is_sha256_hex(values["policy_only_checksum_sha256"]):
            raise _malformed(
                f"invalid checksum {values['policy_only_checksum_sha256']!r}",
                f"{location}.policy_only_checksum_sha256",
            )
        return cls(**values)

    def to_dict(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in _EXPECTED_FIELDS}


@dataclass(frozen=True)
class DigestBaseline:
    """
    Fields:
      schema_version                       -- BASELINE_SCHEMA_VERSION at write time.
      description                          -- Free text for reviewers.
      fixture_policy_input_digests_sha256  -- input name -> SHA-256 of its bytes.
      expected                             -- ExpectedReplayOutput.
      updated_at                           -- UTC ISO-8601 of the last update.
                                              Informational; never compared.
    """
    schema_version:                      int
    description:                         str
    fixture_policy_input_digests_sha256: Dict[str, str]
    expected:                            ExpectedReplayOutput
    updated_at:                          str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DigestBaseline":
        if not isinstance(data, Mapping):
            raise _malformed("baseline must be a JSON object", "baseline")
        digests = data.get("fixture_policy_input_digests_sha256")
        if not isinstance(digests, Mapping):
            raise _malformed("missing digest map", "fixture_policy_input_digests_sha256")
        schema_version = data.get("schema_version")
        if isinstance(schema_version, bool) or not isinstance(schema_version, int):
            raise _malformed(f"invalid schema_version {schema_version!r}", "schema_version")
        return cls(
            schema_version=schema_version,
            description=str(data.get("description", "")),
            fixture_policy_input_digests_sha256={str(k): str(v) for k, v in digests.items()},
            expected=ExpectedReplayOutput.from_dict(data.get("expected")),
            updated_at=str(data.get("updated_at", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "description": self.description,
            "fixture_policy_input_digests_sha256": dict(self.fixture_policy_input_digests_sha256),
            "expected": self.expected.to_dict(),
            "updated_at": self.updated_at,
        }
