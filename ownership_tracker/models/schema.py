from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Schema registry for the service-ownership workbook.

Two column sets exist in the wild:

- ``legacy``: the first export of the ownership sheet (17 columns, no
  "does not exist" flags, monitoring name stored as ``dyna_service_name``).
- ``v2``: the enriched trace-analysis sheet (22 columns, lowercase underscore
  keys prefixed by the owning system: ``mp_`` / ``pd_`` / ``dt_``).

A workbook uses exactly one variant. The variant is chosen once when the file
is loaded and every other component (header reconciliation, completion,
serialisation, onboarding patch derivation) is parameterised by the
``SchemaDefinition`` returned from ``get_schema``.
"""

__all__ = [
    "SchemaVariant",
    "ColumnSpec",
    "HeuristicRule",
    "FieldRoles",
    "SchemaDefinition",
    "LEGACY_COLUMNS",
    "V2_COLUMNS",
    "LEGACY_HEURISTICS",
    "V2_HEURISTICS",
    "get_schema",
]


class SchemaVariant(Enum):
    LEGACY = "legacy"
    V2 = "v2"


@dataclass(frozen=True)
class ColumnSpec:
    key: str
    header: str
    width: int = 100  # pixel width, converted to character width on write


@dataclass(frozen=True)
class HeuristicRule:
    """Keyword rule for the last reconciliation tier.

    A normalized header matches when it contains every ``all_of`` substring
    and, if ``any_of`` is non-empty, at least one ``any_of`` substring.
    """
    key: str
    all_of: tuple[str, ...] = ()
    any_of: tuple[str, ...] = ()

    def matches(self, normalized_header: str) -> bool:
        if not all(token in normalized_header for token in self.all_of):
            return False
        if self.any_of and not any(token in normalized_header for token in self.any_of):
            return False
        return True


@dataclass(frozen=True)
class FieldRoles:
    """Which column plays which part in the onboarding workflow.

    ``None`` means the variant has no such column; patch derivation skips it.
    """
    team: str
    tech_service: str
    tech_service_id: str | None = None
    owning_team: str | None = None
    monitoring_name: str | None = None
    monitoring_enabled: str | None = None
    team_not_found: str | None = None
    tech_service_not_found: str | None = None
    integrated: str | None = None
    acknowledged: str | None = None


@dataclass(frozen=True)
class SchemaDefinition:
    variant: SchemaVariant
    columns: tuple[ColumnSpec, ...]
    key_fields: tuple[str, str, str, str]
    service_name_field: str
    heuristics: tuple[HeuristicRule, ...]
    roles: FieldRoles

    @property
    def keys(self) -> list[str]:
        return [c.key for c in self.columns]

    @property
    def headers(self) -> list[str]:
        return [c.header for c in self.columns]

    def has_field(self, key: str) -> bool:
        return any(c.key == key for c in self.columns)


V2_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("mp_service_name", "MP Service Name", 200),
    ColumnSpec("mp_service_path", "MP Service Path", 150),
    ColumnSpec("mp_cmdb_id", "MP CMDB ID", 120),
    ColumnSpec("pd_tech_svc", "PD Tech SVC", 120),
    ColumnSpec("prime_manager", "Prime Manager", 150),
    ColumnSpec("prime_director", "Prime Director", 150),
    ColumnSpec("prime_vp", "Prime VP", 120),
    ColumnSpec("mse", "MSE", 100),
    ColumnSpec("dt_service_name", "DT Service Name", 150),
    ColumnSpec("next_hop_process_group", "Next Hop Process Group", 180),
    ColumnSpec("next_hop_endpoint", "Next Hop Endpoint", 170),
    ColumnSpec("analysis_status", "Analysis Status", 130),
    ColumnSpec("next_hop_service_code", "Next Hop Service Code", 170),
    ColumnSpec("pd_team_name", "PD Team Name", 120),
    ColumnSpec("integrated_with_pd", "Integrated with PD", 180),
    ColumnSpec("user_acknowledge", "User Acknowledge", 120),
    ColumnSpec("dt_service_id", "DT Service ID", 120),
    ColumnSpec("terraform_onboarding", "Terraform Onboarding", 150),
    ColumnSpec("team_name_does_not_exist", "Team Name Does Not Exist", 180),
    ColumnSpec("tech_svc_does_not_exist", "Tech SVC Does Not Exist", 180),
    ColumnSpec("update_team_name", "Update Team Name", 150),
    ColumnSpec("update_tech_svc", "Update Tech SVC", 150),
)

LEGACY_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("service_name_mp", "Service Name MP", 200),
    ColumnSpec("service_path", "Service Path", 150),
    ColumnSpec("cmdb_id", "CMDB ID", 120),
    ColumnSpec("api_name", "API Name", 150),
    ColumnSpec("prime_manager", "Prime Manager", 150),
    ColumnSpec("prime_director", "Prime Director", 150),
    ColumnSpec("prime_vp", "Prime VP", 120),
    ColumnSpec("mse", "MSE", 100),
    ColumnSpec("dyna_service_name", "Dyna Service Name", 150),
    ColumnSpec("next_hop_process_group", "Next Hop Process Group", 180),
    ColumnSpec("analysis_status", "Analysis Status", 130),
    ColumnSpec("next_hop_service_code", "Next Hop Service Code", 170),
    ColumnSpec("enrichment_status", "Enrichment Status", 130),
    ColumnSpec("team_name", "Team Name", 150),
    ColumnSpec("confirmed", "Confirmed", 100),
    ColumnSpec("owned_team", "Owned Team", 150),
    ColumnSpec("service_id", "Service ID", 120),
)

# Heuristic priority is part of the file-format contract. Rules that need more
# keywords come first; the tech-service rules precede the team rules so that a
# header mentioning both ("PD Team Tech SVC") lands on the tech-service column.
V2_HEURISTICS: tuple[HeuristicRule, ...] = (
    HeuristicRule("team_name_does_not_exist", all_of=("team", "not", "exist")),
    HeuristicRule("tech_svc_does_not_exist", all_of=("tech", "not", "exist")),
    HeuristicRule("update_team_name", all_of=("update", "team")),
    HeuristicRule("update_tech_svc", all_of=("update", "tech")),
    HeuristicRule("next_hop_process_group", all_of=("next", "hop", "process")),
    HeuristicRule("next_hop_endpoint", all_of=("next", "hop", "endpoint")),
    HeuristicRule("next_hop_service_code", all_of=("next", "hop"), any_of=("service", "code")),
    HeuristicRule("prime_manager", all_of=("prime", "manager")),
    HeuristicRule("prime_director", all_of=("prime", "director")),
    HeuristicRule("prime_vp", all_of=("prime", "vp")),
    HeuristicRule("dt_service_id", all_of=("service", "id"), any_of=("dyna", "dt ")),
    HeuristicRule("dt_service_name", any_of=("dyna", "dynatrace")),
    HeuristicRule("dt_service_name", all_of=("dt", "service", "name")),
    HeuristicRule("integrated_with_pd", all_of=("integrated",), any_of=("pd", "pagerduty")),
    HeuristicRule("user_acknowledge", all_of=("user", "acknowledge")),
    HeuristicRule("terraform_onboarding", all_of=("terraform",)),
    HeuristicRule("analysis_status", all_of=("analysis", "status")),
    HeuristicRule("pd_tech_svc", all_of=("tech",), any_of=("pd", "pagerduty", "svc", "service")),
    HeuristicRule("pd_team_name", all_of=("team",), any_of=("pd", "pagerduty", "name")),
    HeuristicRule("mp_cmdb_id", all_of=("cmdb",)),
    HeuristicRule("mp_service_path", all_of=("service", "path")),
    HeuristicRule("mp_service_name", all_of=("service",), any_of=("name", "mp")),
    HeuristicRule("mse", all_of=("mse",)),
)

LEGACY_HEURISTICS: tuple[HeuristicRule, ...] = (
    HeuristicRule("next_hop_process_group", all_of=("next", "hop", "process")),
    HeuristicRule("next_hop_service_code", all_of=("next", "hop"), any_of=("service", "code")),
    HeuristicRule("prime_manager", all_of=("prime", "manager")),
    HeuristicRule("prime_director", all_of=("prime", "director")),
    HeuristicRule("prime_vp", all_of=("prime", "vp")),
    HeuristicRule("dyna_service_name", any_of=("dyna", "dynatrace")),
    HeuristicRule("enrichment_status", all_of=("enrich",)),
    HeuristicRule("analysis_status", all_of=("analysis", "status")),
    HeuristicRule("owned_team", all_of=("own", "team")),
    HeuristicRule("api_name", all_of=("api",)),
    HeuristicRule("team_name", all_of=("team",)),
    HeuristicRule("cmdb_id", all_of=("cmdb",)),
    HeuristicRule("service_path", all_of=("service", "path")),
    HeuristicRule("service_id", all_of=("service", "id")),
    HeuristicRule("service_name_mp", all_of=("service",), any_of=("name", "mp")),
    HeuristicRule("confirmed", all_of=("confirm",)),
    HeuristicRule("mse", all_of=("mse",)),
)

_SCHEMAS: dict[SchemaVariant, SchemaDefinition] = {
    SchemaVariant.V2: SchemaDefinition(
        variant=SchemaVariant.V2,
        columns=V2_COLUMNS,
        key_fields=("pd_team_name", "pd_tech_svc", "mp_service_name", "mp_cmdb_id"),
        service_name_field="mp_service_name",
        heuristics=V2_HEURISTICS,
        roles=FieldRoles(
            team="pd_team_name",
            tech_service="pd_tech_svc",
            tech_service_id="dt_service_id",
            owning_team=None,
            monitoring_name="dt_service_name",
            monitoring_enabled="terraform_onboarding",
            team_not_found="team_name_does_not_exist",
            tech_service_not_found="tech_svc_does_not_exist",
            integrated="integrated_with_pd",
            acknowledged="user_acknowledge",
        ),
    ),
    SchemaVariant.LEGACY: SchemaDefinition(
        variant=SchemaVariant.LEGACY,
        columns=LEGACY_COLUMNS,
        key_fields=("team_name", "api_name", "service_name_mp", "cmdb_id"),
        service_name_field="service_name_mp",
        heuristics=LEGACY_HEURISTICS,
        roles=FieldRoles(
            team="team_name",
            tech_service="api_name",
            tech_service_id="service_id",
            owning_team="owned_team",
            monitoring_name="dyna_service_name",
            integrated="confirmed",
        ),
    ),
}


def get_schema(variant: SchemaVariant | str) -> SchemaDefinition:
    """Return the schema definition for ``variant`` (enum or its string value)."""
    if isinstance(variant, str):
        try:
            variant = SchemaVariant(variant.strip().lower())
        except ValueError as e:
            raise ValueError(f"unknown schema variant: {variant!r}") from e
    return _SCHEMAS[variant]
