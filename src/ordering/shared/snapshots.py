"""Versioned customer and address snapshots.

Snapshots are copied onto carts at checkout and onto orders when they are
placed, and travel inside commands and events as JSON. Every payload carries
a ``schema_version`` so that payloads written by older releases keep
parsing: ``upgrade_*`` functions walk a payload forward one version at a
time until it matches the current value object.

Version history:
    1: legacy camelCase blobs (``firstName``, ``postalCode``, ``countryName``)
    2: snake_case fields with an explicit ``schema_version``
"""

import json

from protean.exceptions import ValidationError
from protean.fields import Integer, String

from ordering.domain import ordering

CUSTOMER_SNAPSHOT_VERSION = 2
ADDRESS_SNAPSHOT_VERSION = 2


@ordering.value_object
class CustomerSnapshot:
    """Customer identity as it was when the checkout happened."""

    schema_version = Integer(default=CUSTOMER_SNAPSHOT_VERSION)
    email = String(required=True, max_length=254)
    first_name = String(max_length=100)
    last_name = String(max_length=100)
    phone = String(max_length=50)

    @property
    def full_name(self):
        return " ".join(part for part in (self.first_name, self.last_name) if part)


@ordering.value_object
class AddressSnapshot:
    """A delivery or billing address captured at checkout time."""

    schema_version = Integer(default=ADDRESS_SNAPSHOT_VERSION)
    address = String(required=True, max_length=255)
    postal_code = String(required=True, max_length=20)
    city = String(required=True, max_length=100)
    country = String(required=True, max_length=100)


# ---------------------------------------------------------------------------
# Upgraders: each takes a payload at version N and returns version N + 1
# ---------------------------------------------------------------------------
def _customer_v1_to_v2(payload: dict) -> dict:
    return {
        "schema_version": 2,
        "email": payload.get("email"),
        "first_name": payload.get("firstName"),
        "last_name": payload.get("lastName"),
        "phone": payload.get("phone") or payload.get("phoneNumber"),
    }


def _address_v1_to_v2(payload: dict) -> dict:
    return {
        "schema_version": 2,
        "address": payload.get("address"),
        "postal_code": payload.get("postalCode"),
        "city": payload.get("city"),
        "country": payload.get("countryName") or payload.get("country"),
    }


_CUSTOMER_UPGRADES = {1: _customer_v1_to_v2}
_ADDRESS_UPGRADES = {1: _address_v1_to_v2}


def _load(payload) -> dict:
    if isinstance(payload, str):
        payload = json.loads(payload)
    if not isinstance(payload, dict):
        raise ValidationError({"snapshot": ["Snapshot payload must be an object"]})
    return payload


def _upgrade(payload: dict, upgrades: dict, current: int, kind: str) -> dict:
    version = payload.get("schema_version", 1)
    while version != current:
        step = upgrades.get(version)
        if step is None:
            raise ValidationError({"schema_version": [f"Unknown {kind} snapshot version: {version}"]})
        payload = step(payload)
        version = payload["schema_version"]
    return payload


def upgrade_customer_snapshot(payload) -> CustomerSnapshot:
    data = _upgrade(_load(payload), _CUSTOMER_UPGRADES, CUSTOMER_SNAPSHOT_VERSION, "customer")
    return CustomerSnapshot(**data)


def upgrade_address_snapshot(payload) -> AddressSnapshot | None:
    if payload is None or payload == "null":
        return None
    data = _upgrade(_load(payload), _ADDRESS_UPGRADES, ADDRESS_SNAPSHOT_VERSION, "address")
    return AddressSnapshot(**data)


def snapshot_json(snapshot) -> str | None:
    """Serialize a snapshot value object (or ``None``) for commands and events."""
    if snapshot is None:
        return None
    return json.dumps(snapshot.to_dict())
