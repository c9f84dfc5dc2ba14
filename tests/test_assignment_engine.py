import random
import unittest

from judging_node.entities.assignment import Placement
from judging_node.entities.judging import JudgeLoad
from judging_node.services.engine import plan_assignments


def _judges(*loads: int) -> list[JudgeLoad]:
    return [JudgeLoad(judge_id=f"judge{i}", current_load=load) for i, load in enumerate(loads)]


def _final_loads(judges: list[JudgeLoad], placements) -> list[int]:
    loads = {judge.judge_id: judge.current_load for judge in judges}
    for placement in placements:
        loads[placement.judge_id] += 1
    return [loads[judge.judge_id] for judge in judges]


class TestPlanAssignments(unittest.TestCase):
    def test_least_loaded_with_capacity_cap(self):
        judges = _judges(0, 1, 2)
        plan = plan_assignments(judges, ["A", "B", "C", "D"], capacity=2)

        self.assertEqual(
            list(plan.placements),
            [
                Placement(item_id="A", judge_id="judge0"),
                Placement(item_id="B", judge_id="judge0"),
                Placement(item_id="C", judge_id="judge1"),
            ],
        )
        self.assertEqual(plan.unplaced, ("D",))
        self.assertEqual(_final_loads(judges, plan.placements), [2, 2, 2])

    def test_ties_go_to_first_listed_judge(self):
        judges = _judges(0, 0)
        plan = plan_assignments(judges, ["X", "Y"], capacity=1)

        self.assertEqual(
            list(plan.placements),
            [Placement(item_id="X", judge_id="judge0"), Placement(item_id="Y", judge_id="judge1")],
        )
        self.assertEqual(plan.unplaced, ())
        self.assertEqual(_final_loads(judges, plan.placements), [1, 1])

    def test_no_judges_leaves_everything_unplaced(self):
        plan = plan_assignments([], ["A", "B"], capacity=5)
        self.assertEqual(plan.placements, ())
        self.assertEqual(plan.unplaced, ("A", "B"))

    def test_non_positive_capacity_places_nothing(self):
        for capacity in (0, -1):
            plan = plan_assignments(_judges(0, 0), ["A", "B"], capacity=capacity)
            self.assertEqual(plan.placements, ())
            self.assertEqual(plan.unplaced, ("A", "B"))

    def test_overloaded_judge_is_never_a_candidate(self):
        judges = _judges(5, 0)
        plan = plan_assignments(judges, ["A", "B", "C"], capacity=2)

        self.assertTrue(all(p.judge_id == "judge1" for p in plan.placements))
        self.assertEqual(len(plan.placements), 2)
        self.assertEqual(plan.unplaced, ("C",))

    def test_empty_items_gives_empty_plan(self):
        plan = plan_assignments(_judges(0, 1), [], capacity=3)
        self.assertEqual(plan.placements, ())
        self.assertEqual(plan.unplaced, ())

    def test_duplicate_judge_identity_is_rejected(self):
        judges = [JudgeLoad("a", 0), JudgeLoad("b", 0), JudgeLoad("a", 1)]
        with self.assertRaises(ValueError):
            plan_assignments(judges, ["A"], capacity=2)

    def test_inputs_are_not_mutated(self):
        judges = _judges(0, 1)
        items = ["A", "B", "C"]
        plan_assignments(judges, items, capacity=3)
        self.assertEqual(judges, _judges(0, 1))
        self.assertEqual(items, ["A", "B", "C"])

    def test_deterministic_for_same_inputs(self):
        judges = _judges(3, 0, 1, 1)
        items = [f"IGC{i:03d}" for i in range(12)]
        self.assertEqual(
            plan_assignments(judges, items, capacity=4),
            plan_assignments(judges, items, capacity=4),
        )


class TestPlanProperties(unittest.TestCase):
    """Randomized checks of conservation, capacity and greedy choice."""

    def setUp(self):
        self.rng = random.Random(20240611)

    def _cases(self, count: int = 200):
        for _ in range(count):
            loads = [self.rng.randint(0, 6) for _ in range(self.rng.randint(1, 6))]
            items = [f"T{i}" for i in range(self.rng.randint(0, 15))]
            capacity = self.rng.randint(1, 6)
            yield _judges(*loads), items, capacity

    def test_every_item_placed_or_unplaced_exactly_once(self):
        for judges, items, capacity in self._cases():
            plan = plan_assignments(judges, items, capacity)
            placed = [p.item_id for p in plan.placements]
            self.assertEqual(sorted(placed + list(plan.unplaced)), sorted(items))
            self.assertEqual(len(set(placed)), len(placed))

    def test_capacity_respected_for_judges_starting_below_it(self):
        for judges, items, capacity in self._cases():
            plan = plan_assignments(judges, items, capacity)
            final = _final_loads(judges, plan.placements)
            for judge, load in zip(judges, final):
                if judge.current_load <= capacity:
                    self.assertLessEqual(load, capacity)
                else:
                    self.assertEqual(load, judge.current_load)

    def test_each_placement_targets_a_least_loaded_judge(self):
        for judges, items, capacity in self._cases():
            plan = plan_assignments(judges, items, capacity)
            effective = {judge.judge_id: judge.current_load for judge in judges}
            for placement in plan.placements:
                eligible = [load for load in effective.values() if load < capacity]
                self.assertEqual(effective[placement.judge_id], min(eligible))
                effective[placement.judge_id] += 1

    def test_unplaced_only_when_every_judge_is_full(self):
        for judges, items, capacity in self._cases():
            plan = plan_assignments(judges, items, capacity)
            if plan.unplaced:
                final = _final_loads(judges, plan.placements)
                self.assertTrue(all(load >= capacity for load in final))


if __name__ == "__main__":
    unittest.main()
