"""
Property-based tests for session reporting and demo data helpers.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from accessilist.client.modal import truncate_task_text
from accessilist.demo import split_counts
from accessilist.reports import COMPLETED, IN_PROGRESS, PENDING, calculate_status, progress

status_values = st.sampled_from(["ready", "active", "done", "pending", "in-progress", "completed"])

status_buttons = st.dictionaries(
    st.from_regex(r"status-[1-9]\.[1-9]", fullmatch=True),
    st.one_of(status_values, st.fixed_dictionaries({"state": status_values})),
    max_size=12,
)


class TestStatusAggregationProperties:
    """Overall status and progress of a state document."""

    @settings(max_examples=50, deadline=None)
    @given(buttons=status_buttons)
    def test_progress_in_unit_interval(self, buttons):
        """Property: Progress is always between 0 and 1."""
        assert 0.0 <= progress(buttons) <= 1.0

    @settings(max_examples=50, deadline=None)
    @given(buttons=status_buttons)
    def test_completed_iff_full_progress(self, buttons):
        """Property: A session is completed exactly when every task is done."""
        status = calculate_status(buttons)
        assert status in {PENDING, IN_PROGRESS, COMPLETED}
        if buttons:
            assert (status == COMPLETED) == (progress(buttons) == 1.0)
        else:
            assert status == PENDING

    @settings(max_examples=50, deadline=None)
    @given(buttons=status_buttons)
    def test_pending_has_no_progress(self, buttons):
        """Property: Pending sessions have no finished tasks."""
        if calculate_status(buttons) == PENDING:
            assert progress(buttons) == 0.0


class TestHelperProperties:
    @settings(max_examples=50, deadline=None)
    @given(total=st.integers(min_value=0, max_value=200))
    def test_split_counts_partition(self, total):
        """Property: Demo counts are non-negative and add up to the row count."""
        done, active, ready = split_counts(total)
        assert min(done, active, ready) >= 0
        assert done + active + ready == total

    @settings(max_examples=50, deadline=None)
    @given(text=st.text(max_size=200))
    def test_truncated_text_bounded(self, text):
        """Property: Dialog text never exceeds 50 characters."""
        shortened = truncate_task_text(text)
        assert len(shortened) <= 50
        if len(text) <= 50:
            assert shortened == text
        else:
            assert shortened.endswith("...")
            assert text.startswith(shortened[:-3])


pytestmark = pytest.mark.property
