import argparse

import pytest

from votewatch.cli.pipeline_cli import (
    build_parser,
    run_cache_stats,
    run_fix_handles,
    run_set_handle,
    run_stats,
)
from votewatch.config import Settings, TwitterConfig
from votewatch.context import AppContext


@pytest.fixture
async def ctx(database, cache):
    context = AppContext(
        settings=Settings(twitter=TwitterConfig(api_key=None)),
        database=database,
        cache=cache,
    )
    yield context
    await context.close()


def test_parser_requires_range_for_votes() -> None:
    parser = build_parser()

    args = parser.parse_args(["votes", "--start", "80100", "--end", "80120"])
    assert (args.command, args.start, args.end) == ("votes", 80100, 80120)

    with pytest.raises(SystemExit):
        parser.parse_args(["votes", "--start", "80100"])


@pytest.mark.asyncio
async def test_stats_command_prints_counts(ctx, add_politician, capsys) -> None:
    await add_politician("Petr Fiala", "P_Fiala", party="ODS")

    assert await run_stats(ctx, argparse.Namespace()) == 0

    output = capsys.readouterr().out
    assert "total_politicians" in output
    assert await run_cache_stats(ctx, argparse.Namespace()) == 0
    assert "db_stats" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_fix_handles_command(ctx, add_politician, capsys) -> None:
    await add_politician("Some One", "@Someone")

    assert await run_fix_handles(ctx, argparse.Namespace()) == 0

    assert "Someone" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_set_handle_command(ctx, add_politician, capsys) -> None:
    pid = await add_politician("Petr Fiala")
    args = build_parser().parse_args(["set-handle", "--id", str(pid), "--handle", "@P_Fiala"])

    assert await run_set_handle(ctx, args) == 0
    assert "@P_Fiala" in capsys.readouterr().out

    politicians = await ctx.stats.get_politicians_with_twitter()
    assert [p.twitter_handle for p in politicians] == ["P_Fiala"]

    cleared = build_parser().parse_args(["set-handle", "--id", str(pid)])
    assert await run_set_handle(ctx, cleared) == 0
    assert "handle cleared" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_set_handle_command_unknown_id(ctx, capsys) -> None:
    args = argparse.Namespace(id=424242, handle="someone")

    assert await run_set_handle(ctx, args) == 1
    assert "424242" in capsys.readouterr().out
