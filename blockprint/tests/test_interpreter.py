"""
Tests for the program interpreter.

Tests:
- Place, for and call semantics
- Scope isolation between iterations and calls
- Execution budgets (depth, steps, calls)
- Output cap early return
"""

from typing import get_args

import pytest

from ..blueprint_dsl.parser import parse_program
from ..blueprint_dsl.program_dsl import (
    Program,
    Step,
    call_step,
    definition,
    for_step,
    place_step,
)
from ..engine_core.blueprint import Block
from ..engine_core.interpreter import (
    ExpansionLimits,
    ProgramInterpreter,
    execute_program,
)
from ..errors import BudgetExceededError, EvaluationError, StructuralError


def run(document, catalog, limits=None):
    return execute_program(parse_program(document), catalog, limits or ExpansionLimits())


def place(x, y=0, z=0, block="stone"):
    return {"op": "place", "x": x, "y": y, "z": z, "blockType": block}


def nested_fors(levels: int) -> dict:
    steps = [place(0)]
    for level in range(levels):
        steps = [{"op": "for", "var": f"v{level}", "from": 0, "to": 0, "steps": steps}]
    return {"steps": steps}


class TestPlace:

    def test_places_in_order(self, catalog):
        blocks = run({"steps": [place(1, 2, 3, "glass"), {"op": "BLOCK", "x": "4", "y": 5, "z": -6}]}, catalog)
        assert [(b.x, b.y, b.z) for b in blocks] == [(1, 2, 3), (4, 5, -6)]
        assert blocks[0].block_type == "minecraft:glass"
        assert blocks[1].block_type == "minecraft:stone"

    def test_output_length_matches_place_steps(self, catalog):
        blocks = run({"steps": [place(i) for i in range(7)]}, catalog)
        assert len(blocks) == 7

    def test_bad_coordinate_reports_path(self, catalog):
        with pytest.raises(EvaluationError) as info:
            run({"steps": [place("q + 1")]}, catalog)
        assert info.value.path == "place.x"
        assert info.value.expression == "q + 1"

    def test_missing_coordinate(self, catalog):
        with pytest.raises(EvaluationError) as info:
            run({"steps": [{"op": "place", "x": 0, "z": 0}]}, catalog)
        assert info.value.path == "place.y"


class TestFor:

    def test_ascending(self, catalog):
        blocks = run({"steps": [{"op": "for", "var": "i", "from": 0, "to": 4, "steps": [place("i")]}]}, catalog)
        assert [b.x for b in blocks] == [0, 1, 2, 3, 4]

    def test_descending(self, catalog):
        blocks = run(
            {"steps": [{"op": "for", "var": "i", "from": 4, "to": 0, "step": -1, "steps": [place("i")]}]},
            catalog,
        )
        assert [b.x for b in blocks] == [4, 3, 2, 1, 0]

    def test_stride(self, catalog):
        blocks = run(
            {"steps": [{"op": "for", "var": "i", "from": 0, "to": 9, "step": "1+2", "steps": [place("i")]}]},
            catalog,
        )
        assert [b.x for b in blocks] == [0, 3, 6, 9]

    def test_empty_range(self, catalog):
        blocks = run({"steps": [{"op": "for", "var": "i", "from": 5, "to": 0, "steps": [place("i")]}]}, catalog)
        assert blocks == []

    def test_zero_step_fails(self, catalog):
        with pytest.raises(EvaluationError) as info:
            run({"steps": [{"op": "for", "var": "i", "from": 0, "to": 4, "step": 0, "steps": [place("i")]}]}, catalog)
        assert info.value.path == "for.step"

    def test_bound_error_path(self, catalog):
        with pytest.raises(EvaluationError) as info:
            run({"steps": [{"op": "for", "var": "i", "from": "n", "to": 4, "steps": []}]}, catalog)
        assert info.value.path == "for.from"

    def test_loop_variable_does_not_leak(self, catalog):
        with pytest.raises(EvaluationError, match="unknown variable 'i'"):
            run({"steps": [
                {"op": "for", "var": "i", "from": 0, "to": 1, "steps": [place("i")]},
                place("i"),
            ]}, catalog)

    def test_nested_loops(self, catalog):
        blocks = run({"steps": [{
            "op": "for", "var": "i", "from": 0, "to": 1, "steps": [
                {"op": "for", "var": "j", "from": 0, "to": 2, "steps": [place("i", "j")]},
            ],
        }]}, catalog)
        assert [(b.x, b.y) for b in blocks] == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]

    def test_empty_body_does_not_iterate(self, catalog):
        blocks = run({"steps": [{"op": "for", "var": "i", "from": 0, "to": 10 ** 15, "steps": []}]}, catalog)
        assert blocks == []


class TestCall:

    def test_def_with_params(self, catalog, hut_program):
        blocks = run(hut_program, catalog)
        # 3 columns x 2 rows of planks plus one glass pane
        assert len(blocks) == 7
        assert {b.block_type for b in blocks[:6]} == {"minecraft:oak_planks"}
        assert blocks[-1].block_type == "minecraft:glass"
        assert max(b.x for b in blocks) == 2
        assert max(b.y for b in blocks) == 2

    def test_unknown_function(self, catalog):
        with pytest.raises(StructuralError, match="unknown function 'tower'"):
            run({"steps": [{"op": "call", "name": "tower"}]}, catalog)

    def test_missing_parameter(self, catalog):
        document = {
            "defs": [{"name": "pillar", "params": ["h"], "steps": [place(0)]}],
            "steps": [{"op": "call", "name": "pillar", "args": {"height": 3}}],
        }
        with pytest.raises(StructuralError, match="missing parameter 'h'"):
            run(document, catalog)

    def test_free_form_args(self, catalog):
        document = {
            "defs": [{"name": "dot", "steps": [place("px", "py", 0, "mat")]}],
            "steps": [{"op": "call", "name": "dot", "args": {"px": 2, "py": "px", "mat": "oak_log"}}],
        }
        # px is unbound in the caller, so py arrives as the raw string "px"
        with pytest.raises(EvaluationError, match="variable 'py' is not numeric"):
            run(document, catalog)

        document["steps"][0]["args"]["py"] = "3*2"
        blocks = run(document, catalog)
        assert blocks == [Block(x=2, y=6, z=0, block_type="minecraft:oak_log")]

    def test_argument_passes_caller_binding(self, catalog):
        document = {
            "defs": [
                {"name": "inner", "params": ["m"], "steps": [place(0, 0, 0, "m")]},
                {"name": "outer", "params": ["mat"], "steps": [
                    {"op": "call", "name": "inner", "args": {"m": "mat"}},
                ]},
            ],
            "steps": [{"op": "call", "name": "outer", "args": {"mat": "cobblestone"}}],
        }
        blocks = run(document, catalog)
        assert blocks[0].block_type == "minecraft:cobblestone"

    def test_bad_argument_reports_path(self, catalog):
        document = {
            "defs": [{"name": "f", "params": ["a"], "steps": []}],
            "steps": [{"op": "call", "name": "f", "args": {"a": None}}],
        }
        with pytest.raises(EvaluationError) as info:
            run(document, catalog)
        assert info.value.path == "call.f.args.a"

    def test_last_def_wins(self, catalog):
        document = {
            "defs": [
                {"name": "f", "steps": [place(1)]},
                {"name": "f", "steps": [place(2)]},
            ],
            "steps": [{"op": "call", "name": "f"}],
        }
        assert [b.x for b in run(document, catalog)] == [2]

    def test_parent_scope_not_mutated(self, catalog):
        document = {
            "defs": [{"name": "f", "params": ["i"], "steps": [place("i")]}],
            "steps": [{
                "op": "for", "var": "i", "from": 0, "to": 1, "steps": [
                    {"op": "call", "name": "f", "args": {"i": "i+10"}},
                    place("i"),
                ],
            }],
        }
        assert [b.x for b in run(document, catalog)] == [10, 0, 11, 1]


class TestBudgets:

    def test_depth_20_succeeds(self, catalog):
        assert len(run(nested_fors(20), catalog)) == 1

    def test_depth_30_fails(self, catalog):
        with pytest.raises(BudgetExceededError) as info:
            run(nested_fors(30), catalog)
        assert info.value.limit == "call depth"

    def test_recursive_def_hits_a_ceiling(self, catalog):
        document = {
            "defs": [{"name": "f", "steps": [{"op": "call", "name": "f"}]}],
            "steps": [{"op": "call", "name": "f"}],
        }
        with pytest.raises(BudgetExceededError):
            run(document, catalog)

    def test_call_count_ceiling(self, catalog):
        document = {
            "defs": [{"name": "noop", "steps": []}],
            "steps": [{
                "op": "for", "var": "i", "from": 1, "to": 501,
                "steps": [{"op": "call", "name": "noop"}],
            }],
        }
        with pytest.raises(BudgetExceededError) as info:
            run(document, catalog)
        assert info.value.limit == "call count"

    def test_step_ceiling(self, catalog):
        limits = ExpansionLimits(max_blocks=10 ** 6, max_steps=100)
        document = {"steps": [{"op": "for", "var": "i", "from": 0, "to": 200, "steps": [place("i")]}]}
        with pytest.raises(BudgetExceededError) as info:
            run(document, catalog, limits)
        assert info.value.limit == "executed steps"

    def test_output_cap_is_not_an_error(self, catalog):
        limits = ExpansionLimits(max_blocks=5)
        document = {"steps": [{"op": "for", "var": "i", "from": 0, "to": 10 ** 9, "steps": [place("i")]}]}
        blocks = run(document, catalog, limits)
        assert [b.x for b in blocks] == [0, 1, 2, 3, 4]

    def test_budget_counts(self, catalog, hut_program):
        interpreter = ProgramInterpreter(program=parse_program(hut_program), catalog=catalog)
        interpreter.run()
        assert interpreter.budget.calls == 1
        # call + place + outer for + 3 inner fors + 6 places
        assert interpreter.budget.executed_steps == 12


class TestMalformedSteps:
    """A malformed step is an error only once execution reaches it."""

    def test_step_after_cap_is_never_reached(self, catalog):
        document = {"steps": [place(0), place(1), {"op": "bogus"}]}
        blocks = run(document, catalog, ExpansionLimits(max_blocks=2))
        assert [b.x for b in blocks] == [0, 1]

    def test_step_in_empty_loop_is_never_reached(self, catalog):
        document = {"steps": [
            place(0),
            {"op": "for", "var": "i", "from": 1, "to": 0, "steps": [{"op": "bogus"}]},
        ]}
        assert len(run(document, catalog)) == 1

    def test_step_in_uncalled_def_is_never_reached(self, catalog):
        document = {
            "defs": [{"name": "unused", "steps": [{"op": "teleport"}]}],
            "steps": [place(0)],
        }
        assert len(run(document, catalog)) == 1

    def test_reached_step_fails(self, catalog):
        document = {"steps": [
            place(0),
            {"op": "for", "var": "i", "from": 0, "to": 1, "steps": [{"op": "bogus"}]},
        ]}
        with pytest.raises(StructuralError, match="unknown op 'bogus'") as info:
            run(document, catalog)
        assert info.value.path == "steps[1].steps[0]"

    def test_reached_step_counts_against_budget(self, catalog):
        interpreter = ProgramInterpreter(
            program=parse_program({"steps": [place(0), {"op": "bogus"}]}),
            catalog=catalog,
        )
        with pytest.raises(StructuralError):
            interpreter.run()
        assert interpreter.budget.executed_steps == 2


class TestIntegerRange:
    """Oversized integers are evaluation errors, not crashes."""

    def test_long_literal_coordinate(self, catalog):
        document = {"steps": [place("9" * 5000)]}
        with pytest.raises(EvaluationError, match="out of range") as info:
            run(document, catalog)
        assert info.value.path == "place.x"

    def test_huge_json_number(self, catalog):
        document = {"steps": [place(10 ** 400)]}
        with pytest.raises(EvaluationError, match="out of range"):
            run(document, catalog)

    def test_long_literal_argument_passed_as_string(self, catalog):
        document = {
            "defs": [{"name": "col", "params": ["n"], "steps": [place("n")]}],
            "steps": [{"op": "call", "name": "col", "args": {"n": "9" * 5000}}],
        }
        with pytest.raises(EvaluationError, match="out of range") as info:
            run(document, catalog)
        assert info.value.path == "place.x"


class TestProgramsInCode:
    """Programs can be built with the factory helpers."""

    def test_factories(self, catalog):
        program = Program(
            steps=(call_step("row", n=2),),
            defs={"row": definition("row", [for_step("i", 0, "n", [place_step("i", 0, 0, "glass")])], ["n"])},
        )
        blocks = execute_program(program, catalog)
        assert [b.x for b in blocks] == [0, 1, 2]

    def test_handler_table_covers_every_step_type(self, catalog):
        interpreter = ProgramInterpreter(program=Program(), catalog=catalog)
        table = interpreter.handlers
        assert set(table) == set(get_args(Step))
        interpreter.run()
        assert interpreter.handlers is table
