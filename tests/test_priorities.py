from __future__ import annotations

import pytest

from gilfond_bot.errors import PriorityNotConvergedError
from gilfond_bot.priorities import PriorityReconciler

from .fakes import FakeRequestsPage


def strictly_increasing(values):
    return all(a < b for a, b in zip(values, values[1:]))


class TestPriorityReconciler:
    def test_nothing_to_do(self):
        page = FakeRequestsPage(assigned=[1, 2])
        result = PriorityReconciler(page).run()
        assert result.rounds == 0
        assert result.assigned == []
        assert page.saves == 0
        assert page.opened == 1

    def test_single_round_continues_after_existing_max(self):
        page = FakeRequestsPage(assigned=[1, 3], unset=2)
        result = PriorityReconciler(page).run()
        # max 3, round skew +1, then 5 and 6
        assert result.assigned == [5, 6]
        assert result.rounds == 1
        assert page.values == [1, 3, 5, 6]

    def test_empty_page_starts_from_zero(self):
        page = FakeRequestsPage(unset=3)
        result = PriorityReconciler(page).run()
        assert result.assigned == [2, 3, 4]

    def test_partial_saves_converge(self):
        page = FakeRequestsPage(unset=3, accept_per_save=1)
        result = PriorityReconciler(page).run()
        assert result.rounds == 3
        assert result.assigned == [2, 3, 4, 7, 8, 12]
        assert page.values == [2, 7, 12]

    @pytest.mark.parametrize("unset", [1, 2, 5, 9])
    def test_one_cleared_per_round_terminates_within_initial_count(self, unset):
        page = FakeRequestsPage(assigned=[4], unset=unset, accept_per_save=1, reverse_odd_rounds=True)
        result = PriorityReconciler(page, max_rounds=unset).run()
        assert result.rounds == unset
        assert page.unset_priority_fields() == []
        assert strictly_increasing(page.writes)
        assert min(page.writes) > 4

    def test_values_never_repeat_across_rounds(self):
        page = FakeRequestsPage(assigned=[2], unset=6, accept_per_save=2)
        result = PriorityReconciler(page).run()
        assert len(set(result.assigned)) == len(result.assigned)
        assert strictly_increasing(result.assigned)
        assert all(v is not None for v in page.values)

    def test_gives_up_after_max_rounds(self):
        page = FakeRequestsPage(unset=2, accept_per_save=0)
        with pytest.raises(PriorityNotConvergedError) as exc:
            PriorityReconciler(page, max_rounds=3).run()
        assert exc.value.rounds == 3
        assert exc.value.remaining == 2
        assert page.saves == 3

    def test_default_bound_covers_long_backlog(self):
        page = FakeRequestsPage(unset=25, accept_per_save=1)
        result = PriorityReconciler(page).run()
        assert result.rounds == 25
        assert page.unset_priority_fields() == []
        assert strictly_increasing(page.values)

    def test_bound_is_fixed_by_first_round(self):
        page = FakeRequestsPage(unset=4, accept_per_save=0)
        with pytest.raises(PriorityNotConvergedError) as exc:
            PriorityReconciler(page, max_rounds=2).run()
        assert exc.value.rounds == 4
        assert page.saves == 4

    def test_save_errors_propagate(self):
        class BrokenSave(FakeRequestsPage):
            def save_priorities(self):
                raise RuntimeError("save button missing")

        with pytest.raises(RuntimeError):
            PriorityReconciler(BrokenSave(unset=1)).run()
