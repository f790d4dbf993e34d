from votewatch.utils.dedupe import dedupe_by_key


def test_dedupe_skips_existing_and_repeated_keys() -> None:
    records = [{"id": "1"}, {"id": "2"}, {"id": "2"}, {"id": "3"}, {"id": None}]

    fresh, skipped = dedupe_by_key(records, lambda r: r["id"], existing_keys={"3"})

    assert [r["id"] for r in fresh] == ["1", "2"]
    assert skipped == 3


def test_dedupe_keeps_source_order() -> None:
    fresh, skipped = dedupe_by_key(["c", "a", "b", "a"], lambda r: r)

    assert fresh == ["c", "a", "b"]
    assert skipped == 1
