"""Payment-method name to rail resolution."""

import pytest

from payroute.common.errors import IntegrityError, UnknownPaymentMethod
from payroute.rails.correspondent import CorrespondentRail
from payroute.rails.crypto import CryptoRail
from payroute.rails.regional import RegionalInstantRail
from payroute.rails.registry import DEFAULT_RAILS, RailRegistry
from payroute.services.router.catalog import REFERENCE_METHODS


@pytest.mark.parametrize(
    ("name", "rail_type"),
    [
        ("SWIFT Wire Transfer", CorrespondentRail),
        ("Overnight Express", CorrespondentRail),
        ("SEPA Instant", RegionalInstantRail),
        ("FedWire (Domestic)", RegionalInstantRail),
        ("Lightning Network", CryptoRail),
    ],
)
def test_resolve_known_methods(name, rail_type):
    assert isinstance(RailRegistry().resolve(name), rail_type)


def test_every_seeded_method_has_a_rail():
    """Catalog and registry must agree or execution fails with an integrity error."""

    registry = RailRegistry()
    for name, *_ in REFERENCE_METHODS:
        registry.resolve(name)
    assert len(registry.names()) == len(DEFAULT_RAILS) == len(REFERENCE_METHODS)


def test_unknown_method_is_integrity_error():
    with pytest.raises(UnknownPaymentMethod) as excinfo:
        RailRegistry().resolve("Carrier Pigeon")

    assert isinstance(excinfo.value, IntegrityError)
    assert "Carrier Pigeon" in str(excinfo.value)


def test_resolve_builds_fresh_instances():
    registry = RailRegistry()

    assert registry.resolve("SEPA Instant") is not registry.resolve("SEPA Instant")
