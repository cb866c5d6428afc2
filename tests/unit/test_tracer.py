"""Tests for the STUDIO_ENGINE_TRACE decorator."""

from dataclasses import dataclass

from studio_engines.negotiation import calculate_acceptance
from studio_engines.tracer import compute_input_fingerprint, traced_engine


@dataclass(frozen=True)
class Inputs:
    share: float
    marketing: int


@dataclass(frozen=True)
class Outcome:
    gross: int
    closes: bool


@traced_engine("sample", "2.1", fingerprint_fields=("inputs",), result_fields=("gross", "closes"))
def sample_engine(*, inputs: Inputs) -> Outcome:
    return Outcome(gross=inputs.marketing * 2, closes=False)


class TestFingerprint:
    def test_dict_key_order_ignored(self):
        a = compute_input_fingerprint(("skills",), {"skills": {"drama": 40, "horror": 10}})
        b = compute_input_fingerprint(("skills",), {"skills": {"horror": 10, "drama": 40}})
        assert a == b
        assert len(a) == 16

    def test_dataclass_fields_count(self):
        a = compute_input_fingerprint(("inputs",), {"inputs": Inputs(0.35, 10)})
        b = compute_input_fingerprint(("inputs",), {"inputs": Inputs(0.35, 11)})
        assert a != b

    def test_missing_field_reads_as_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(
            ("x",), {"x": None}
        )

    def test_only_named_fields_count(self):
        a = compute_input_fingerprint(("a",), {"a": 1, "b": 2})
        b = compute_input_fingerprint(("a",), {"a": 1, "b": 3})
        assert a == b


class TestTraceRecord:
    def test_one_record_per_call(self, captured_logs):
        result = sample_engine(inputs=Inputs(0.35, 10))

        traces = [r for r in captured_logs() if r["message"] == "STUDIO_ENGINE_TRACE"]
        assert result.gross == 20
        assert len(traces) == 1
        trace = traces[0]
        assert trace["engine_name"] == "sample"
        assert trace["engine_version"] == "2.1"
        assert trace["result"] == {"gross": 20, "closes": False}
        assert trace["input_fingerprint"] == compute_input_fingerprint(
            ("inputs",), {"inputs": Inputs(0.35, 10)}
        )

    def test_engine_calls_are_traced(self, captured_logs):
        calculate_acceptance(
            prestige_level=1,
            director_fame=None,
            role_importance="lead",
            offered_salary=5_000_000,
            asking_price=5_000_000,
            genre_skill=40,
        )
        traces = [r for r in captured_logs() if r.get("engine_name") == "negotiation"]
        assert traces[-1]["result"] == {"probability": 46}
