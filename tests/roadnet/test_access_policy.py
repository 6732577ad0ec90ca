"""Tests for the car access policy."""

import pytest

from core.types import NodeID, WayAccess, WayID
from roadnet.io.osm import Way
from roadnet.vehicles import CarAccessPolicy, TaxiAccessPolicy, create_policy
from roadnet.vehicles.access import AccessDecision, parse_speed


def make_way(**tags: str) -> Way:
    return Way(id=WayID(1), node_refs=(NodeID(1), NodeID(2)), tags=dict(tags))


@pytest.fixture
def policy() -> CarAccessPolicy:
    return CarAccessPolicy()


@pytest.mark.parametrize(
    "value,expected",
    [
        ("50", 50.0),
        ("30 mph", 30 * 1.609344),
        ("50;30", 50.0),
        ("none", 150.0),
        ("walk", 6.0),
    ],
)
def test_parse_speed(value: str, expected: float) -> None:
    """Test maxspeed values in kph, mph and knots are parsed."""
    assert parse_speed(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", ["signals", "0", "", None])
def test_parse_speed_unusable(value: str | None) -> None:
    """Test non-numeric and zero maxspeed values are ignored."""
    assert parse_speed(value) is None


class TestCarAccess:
    """Test way classification for cars."""

    def test_residential_both_directions(self, policy: CarAccessPolicy) -> None:
        """Test a plain residential way is open both ways at its default speed."""
        decision = policy.handle_way_tags(make_way(highway="residential"))
        assert decision == AccessDecision(WayAccess.WAY, True, True, 30.0, 30.0)

    def test_oneway(self, policy: CarAccessPolicy) -> None:
        """Test oneway=yes closes the backward direction."""
        decision = policy.handle_way_tags(make_way(highway="primary", oneway="yes"))
        assert decision.forward and not decision.backward

    def test_reverse_oneway(self, policy: CarAccessPolicy) -> None:
        """Test oneway=-1 closes the forward direction."""
        decision = policy.handle_way_tags(make_way(highway="primary", oneway="-1"))
        assert not decision.forward and decision.backward

    def test_roundabout_is_oneway(self, policy: CarAccessPolicy) -> None:
        """Test roundabouts are implicitly oneway."""
        decision = policy.handle_way_tags(make_way(highway="tertiary", junction="roundabout"))
        assert decision.forward and not decision.backward

    @pytest.mark.parametrize(
        "tags",
        [
            {"highway": "residential", "access": "private"},
            {"highway": "residential", "motorcar": "no"},
            {"highway": "pedestrian"},
            {"highway": "footway"},
            {"highway": "service", "service": "emergency_access"},
            {"highway": "primary", "impassable": "yes"},
            {"building": "yes"},
        ],
    )
    def test_skipped_ways(self, policy: CarAccessPolicy, tags: dict[str, str]) -> None:
        """Test ways cars may not use are skipped."""
        assert policy.get_access(make_way(**tags)) is WayAccess.CAN_SKIP
        assert not policy.handle_way_tags(make_way(**tags)).usable

    def test_first_restriction_decides(self, policy: CarAccessPolicy) -> None:
        """Test motorcar=yes overrides a later access=no."""
        way = make_way(highway="residential", motorcar="yes", access="no")
        assert policy.get_access(way) is WayAccess.WAY

    def test_maxspeed_applied_and_stored(self, policy: CarAccessPolicy) -> None:
        """Test maxspeed is scaled and rounded to the encoding step."""
        decision = policy.handle_way_tags(make_way(highway="motorway", maxspeed="130"))
        # 130 * 0.9 = 117, rounded to the 5 kph encoding step
        assert decision.forward_speed_kph == 115.0

    def test_bad_surface_caps_speed(self, policy: CarAccessPolicy) -> None:
        """Test a bad surface caps the way speed."""
        decision = policy.handle_way_tags(make_way(highway="primary", surface="gravel"))
        assert decision.forward_speed_kph == 30.0

    def test_ferry(self, policy: CarAccessPolicy) -> None:
        """Test ferries are usable both ways at the ferry speed."""
        decision = policy.handle_way_tags(make_way(route="ferry"))
        assert decision.access is WayAccess.FERRY
        assert decision.forward and decision.backward
        assert decision.forward_speed_kph == 10.0

    def test_private_ferry_skipped(self, policy: CarAccessPolicy) -> None:
        """Test a private ferry is skipped."""
        assert policy.get_access(make_way(route="ferry", access="private")) is WayAccess.CAN_SKIP

    def test_ford_blocked_only_when_configured(self) -> None:
        """Test fords are only blocked when the policy asks for it."""
        way = make_way(highway="residential", ford="yes")
        assert CarAccessPolicy().get_access(way) is WayAccess.WAY
        assert CarAccessPolicy(block_fords=True).get_access(way) is WayAccess.CAN_SKIP

    def test_classify_wraps_failures(self, policy: CarAccessPolicy, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test an error while classifying a way is reported in the result."""

        def broken(way: Way, speed: float) -> float:
            raise RuntimeError("boom")

        monkeypatch.setattr(policy, "apply_max_speed", broken)
        result = policy.classify(make_way(highway="primary"))
        assert not result.ok
        assert not result.decision.usable
        assert isinstance(result.error.__cause__, RuntimeError)


class TestCarBarriers:
    """Test barrier detection on nodes."""

    def test_bollard(self, policy: CarAccessPolicy) -> None:
        """Test a bollard blocks cars."""
        assert policy.is_barrier({"barrier": "bollard"})

    def test_bollard_with_access(self, policy: CarAccessPolicy) -> None:
        """Test an explicit access tag lifts the bollard."""
        assert not policy.is_barrier({"barrier": "bollard", "access": "yes"})

    def test_bus_trap(self, policy: CarAccessPolicy) -> None:
        assert policy.is_barrier({"barrier": "bus_trap"})

    def test_restricted_node(self, policy: CarAccessPolicy) -> None:
        """Test a node with restricted access is a barrier."""
        assert policy.is_barrier({"access": "private"})

    def test_plain_node(self, policy: CarAccessPolicy) -> None:
        """Test an ordinary node is not a barrier."""
        assert not policy.is_barrier({"highway": "traffic_signals"})


def test_create_policy() -> None:
    """Test policies are created by vehicle name."""
    assert type(create_policy("car")) is CarAccessPolicy
    assert type(create_policy("taxi")) is TaxiAccessPolicy
    with pytest.raises(ValueError):
        create_policy("bicycle")
