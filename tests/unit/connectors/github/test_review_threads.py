"""Tests for review-thread payload collection."""

from ghexport.connectors.github.review_threads import (
    PullReviewThreadResolution,
    collect_graphql_thread_page,
    collect_rest_threads,
)


class TestCollectRestThreads:
    def test_field_name_variants(self):
        result = collect_rest_threads(
            [
                {"resolved": True, "comments": [{"id": 1}, {"database_id": 2}]},
                {"isResolved": False, "comments": [{"databaseId": 3}]},
            ]
        )
        assert result.comment_resolution == {1: True, 2: True, 3: False}
        assert not result.incomplete

    def test_first_strategy_wins(self):
        result = collect_rest_threads(
            [{"resolved": False, "isResolved": True, "comments": [{"id": 5, "databaseId": 6}]}]
        )
        assert result.comment_resolution == {5: False}

    def test_unreadable_thread_marks_incomplete(self):
        result = collect_rest_threads(
            [
                {"comments": [{"id": 1}]},
                {"resolved": True, "comments": "nope"},
                "garbage",
                {"resolved": True, "comments": [{"id": 2}]},
            ]
        )
        assert result.comment_resolution == {2: True}
        assert result.incomplete

    def test_bool_is_not_an_id(self):
        result = collect_rest_threads([{"resolved": True, "comments": [{"id": True}]}])
        assert result.comment_resolution == {}
        assert result.incomplete


class TestCollectGraphqlPage:
    def test_folds_into_existing_result(self):
        result = PullReviewThreadResolution(comment_resolution={1: False})
        collect_graphql_thread_page(
            {
                "nodes": [
                    {
                        "isResolved": True,
                        "comments": {"pageInfo": {"hasNextPage": False}, "nodes": [{"databaseId": 2}]},
                    },
                    {
                        "isResolved": None,
                        "comments": {"pageInfo": {"hasNextPage": True}, "nodes": [{"databaseId": 3}]},
                    },
                    None,
                    {"isResolved": True},
                ]
            },
            result,
        )
        assert result.comment_resolution == {1: False, 2: True, 3: False}
        assert result.incomplete
