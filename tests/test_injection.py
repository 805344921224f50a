from __future__ import annotations

from lsrsim.core.topology import Topology
from lsrsim.core.types import EventKind
from lsrsim.sim import Simulator


def _converged_square() -> Simulator:
    sim = Simulator()
    sim.start(Topology.from_edges([("A", "B"), ("B", "C"), ("C", "D"), ("D", "A")]))
    assert sim.run_until_converged(max_steps=20) is not None
    return sim


def test_hello_needs_a_physical_link() -> None:
    sim = _converged_square()
    result = sim.inject_custom_packet("hello", "A", "C")
    assert not result.ok
    assert result.error == "InvalidPacketInjection"
    assert "not directly connected" in result.message


def test_lsp_must_be_held_by_the_source() -> None:
    sim = _converged_square()
    result = sim.inject_custom_packet("lsp", "A", "B", lsp_owner="C", sequence=99)
    assert not result.ok
    assert result.error == "InvalidPacketInjection"

    missing = sim.inject_custom_packet("lsp", "A", "B", lsp_owner="C")
    assert not missing.ok


def test_valid_lsp_injection_is_annotated_and_rejected_as_duplicate() -> None:
    sim = _converged_square()
    held = sim.get_lsdb("A")["C"].sequence
    result = sim.inject_custom_packet("lsp", "A", "B", lsp_owner="C", sequence=held)
    assert result.ok

    events = sim.next_step()
    injected = [e for e in events if e.kind is EventKind.PACKET_INJECTED]
    assert injected[0].detail == {"packet": f"LSP-C-{held}"}
    forwarded = [e for e in events if e.kind is EventKind.LSP_FORWARDED]
    assert forwarded[0].detail == {"expected_reject": True}
    rejected = [e for e in events if e.kind is EventKind.LSP_REJECTED]
    assert [(e.router, e.origin, e.sequence) for e in rejected] == [("B", "C", held)]


def test_lsp_needs_discovered_neighbor() -> None:
    sim = Simulator()
    sim.create_router("A")
    sim.create_router("B")
    sim.connect_routers("A", "B")
    result = sim.inject_custom_packet("lsp", "A", "B", lsp_owner="A", sequence=1)
    assert not result.ok
    assert "has not discovered" in result.message


def test_rejections_for_bad_endpoints_and_types() -> None:
    sim = _converged_square()
    assert sim.inject_custom_packet("ping", "A", "B").error == "InvalidPacketInjection"
    assert not sim.inject_custom_packet("hello", "A", "Z").ok
    assert not sim.inject_custom_packet("hello", "A", "A").ok
    sim.fail_router("B")
    assert "is down" in sim.inject_custom_packet("hello", "A", "B").message


def test_rejection_is_reported_as_event() -> None:
    sim = _converged_square()
    sim.inject_custom_packet("hello", "A", "C")
    events = sim.next_step()
    rejected = [e for e in events if e.kind is EventKind.OPERATION_REJECTED]
    assert rejected[0].detail["action"] == "inject"
    assert rejected[0].detail["error"] == "InvalidPacketInjection"
