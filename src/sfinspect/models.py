"""Plain data types shared by the transport, bulk and cache layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

# Values decoded from the REST JSON path may nest; bulk CSV values are always flat.
JsonValue = Union[None, bool, int, float, str, Dict[str, Any], List[Any]]
RecordMap = Dict[str, JsonValue]


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Credentials for one request. Never persisted by this package."""

    access_token: str
    instance_url: str
    refresh_token: Optional[str] = None

    def __repr__(self) -> str:
        # keep tokens out of logs and tracebacks
        return f"ConnectionDescriptor(instance_url={self.instance_url!r})"


@dataclass
class QueryResult:
    total_size: int
    done: bool
    records: List[RecordMap] = field(default_factory=list)
    next_records_url: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> QueryResult:
        """Build from a REST ``/query`` response body."""
        records = list(payload.get("records") or [])
        return cls(
            total_size=int(payload.get("totalSize", len(records))),
            done=bool(payload.get("done", True)),
            records=records,
            next_records_url=payload.get("nextRecordsUrl"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "totalSize": self.total_size,
            "done": self.done,
            "records": self.records,
        }
        if self.next_records_url:
            out["nextRecordsUrl"] = self.next_records_url
        return out


@dataclass(frozen=True)
class PicklistValue:
    label: str
    value: str
    active: bool = True


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    label: str = ""
    type: str = ""
    length: int = 0
    precision: int = 0
    scale: int = 0
    nillable: bool = False
    unique: bool = False
    calculated: bool = False
    custom: bool = False
    createable: bool = False
    updateable: bool = False
    external_id: bool = False
    id_lookup: bool = False
    picklist_values: Tuple[PicklistValue, ...] = ()
    relationship_name: Optional[str] = None
    reference_to: FrozenSet[str] = frozenset()
    dependent_picklist: bool = False
    controller_name: Optional[str] = None
    soap_type: str = ""

    @classmethod
    def from_describe(cls, f: Dict[str, Any]) -> FieldDescriptor:
        return cls(
            name=f["name"],
            label=f.get("label") or "",
            type=f.get("type") or "",
            length=f.get("length") or 0,
            precision=f.get("precision") or 0,
            scale=f.get("scale") or 0,
            nillable=bool(f.get("nillable")),
            unique=bool(f.get("unique")),
            calculated=bool(f.get("calculated")),
            custom=bool(f.get("custom")),
            createable=bool(f.get("createable")),
            updateable=bool(f.get("updateable")),
            external_id=bool(f.get("externalId")),
            id_lookup=bool(f.get("idLookup")),
            picklist_values=tuple(
                PicklistValue(
                    label=p.get("label") or "",
                    value=p.get("value") or "",
                    active=bool(p.get("active", True)),
                )
                for p in f.get("picklistValues") or []
            ),
            relationship_name=f.get("relationshipName"),
            reference_to=frozenset(f.get("referenceTo") or []),
            dependent_picklist=bool(f.get("dependentPicklist")),
            controller_name=f.get("controllerName"),
            soap_type=f.get("soapType") or "",
        )


@dataclass(frozen=True)
class ChildRelationship:
    child_sobject: str
    field: str
    relationship_name: Optional[str] = None


@dataclass(frozen=True)
class RecordTypeInfo:
    name: str
    record_type_id: str
    active: bool = True


@dataclass(frozen=True)
class ObjectMetadata:
    """Parsed ``/sobjects/<Object>/describe`` payload."""

    name: str
    label: str = ""
    label_plural: str = ""
    key_prefix: Optional[str] = None
    custom: bool = False
    createable: bool = False
    deletable: bool = False
    queryable: bool = False
    searchable: bool = False
    updateable: bool = False
    fields: Tuple[FieldDescriptor, ...] = ()
    child_relationships: Tuple[ChildRelationship, ...] = ()
    record_type_infos: Tuple[RecordTypeInfo, ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_describe(cls, d: Dict[str, Any]) -> ObjectMetadata:
        return cls(
            name=d["name"],
            label=d.get("label") or "",
            label_plural=d.get("labelPlural") or "",
            key_prefix=d.get("keyPrefix"),
            custom=bool(d.get("custom")),
            createable=bool(d.get("createable")),
            deletable=bool(d.get("deletable")),
            queryable=bool(d.get("queryable")),
            searchable=bool(d.get("searchable")),
            updateable=bool(d.get("updateable")),
            fields=tuple(FieldDescriptor.from_describe(f) for f in d.get("fields") or []),
            child_relationships=tuple(
                ChildRelationship(
                    child_sobject=c.get("childSObject") or "",
                    field=c.get("field") or "",
                    relationship_name=c.get("relationshipName"),
                )
                for c in d.get("childRelationships") or []
            ),
            record_type_infos=tuple(
                RecordTypeInfo(
                    name=r.get("name") or "",
                    record_type_id=r.get("recordTypeId") or "",
                    active=bool(r.get("active", True)),
                )
                for r in d.get("recordTypeInfos") or []
            ),
            raw=d,
        )

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> Optional[FieldDescriptor]:
        for f in self.fields:
            if f.name == name:
                return f
        return None
