from __future__ import annotations

import json

from loguru import logger
import pytest

from app.commands.query import normalize_arg, normalize_args, shell_quote
from app.commands.tagging import parse_rating
from core.query.errors import QueryError
from infrastructure.database import DB_ENV_VAR
from infrastructure.settings import SETTINGS_ENV_VAR
import main as cli


@pytest.fixture
def run_cli(tmp_path, monkeypatch, capsys):
    settings = tmp_path / "settings.json"
    settings.write_text(
        json.dumps({"logging": {"dir": str(tmp_path / "logs")}, "identity": {"cache_size": 4}}),
        encoding="utf-8",
    )
    monkeypatch.setenv(SETTINGS_ENV_VAR, str(settings))
    monkeypatch.delenv(DB_ENV_VAR, raising=False)
    db = str(tmp_path / "tags.db")

    def _run(*argv: str) -> tuple[int, str, str]:
        capsys.readouterr()
        code = cli.main(["--db", db, *argv])
        out, err = capsys.readouterr()
        return code, out, err

    yield _run
    logger.remove()


@pytest.fixture
def album(make_image, tmp_path):
    """Three images in album/, one of them a lossless copy of another."""
    a = make_image("album/a.png", seed=1)
    b = make_image("album/b.png", seed=2)
    c = make_image("album/c.bmp", seed=1)
    return a.resolve(), b.resolve(), c.resolve()


def test_tag_then_query(run_cli, album):
    a, b, _c = album
    assert run_cli("tag", "-a", "max", "-a", "boots", str(a))[0] == 0
    assert run_cli("tag", "-a", "max", str(b))[0] == 0

    assert run_cli("tagged", "max") == (0, f"{a}\n{b}\n", "")
    assert run_cli("tagged", "max", "boots")[1] == f"{a}\n"
    assert run_cli("tagged", "max", "-boots")[1] == f"{b}\n"
    assert run_cli("tagged", "-boots", "max")[1] == f"{b}\n"
    assert run_cli("tagged", "--expr", "boots + max")[1] == f"{a}\n{b}\n"
    assert run_cli("tagged", "nosuchtag") == (0, "", "")


def test_negated_term_starting_with_h(run_cli, album):
    a, b, _c = album
    run_cli("tag", "-a", "max", "-a", "holiday", str(a))
    run_cli("tag", "-a", "max", str(b))
    assert run_cli("tagged", "-holiday", "max") == (0, f"{b}\n", "")
    assert run_cli("tagged", "max", "-holiday") == (0, f"{b}\n", "")


def test_tagged_help(run_cli):
    with pytest.raises(SystemExit) as excinfo:
        run_cli("tagged", "--help")
    assert excinfo.value.code == 0


def test_tag_delete(run_cli, album):
    a = album[0]
    run_cli("tag", "-a", "max", "-a", "boots", str(a))
    run_cli("tag", "-d", "boots", str(a))
    assert run_cli("tagged", "boots")[1] == ""
    assert run_cli("tagged", "max")[1] == f"{a}\n"


def test_quoted_argument_is_one_tag(run_cli, album):
    a, b, _c = album
    run_cli("tag", "-a", "max boots", str(a))
    run_cli("tag", "-a", "max", "-a", "boots", str(b))
    assert run_cli("tagged", "max boots")[1] == f"{a}\n"
    assert run_cli("tagged", "max", "boots")[1] == f"{b}\n"


def test_output_modes(run_cli, album):
    a, b, _c = album
    run_cli("tag", "-a", "max", "-a", 'say "hi"', str(a))
    run_cli("tag", "-a", "max", str(b))

    assert run_cli("tagged", "--nul", "max")[1] == f"{a}\0{b}\0"
    assert run_cli("tagged", "--directories", "max")[1] == f"{a.parent}\n"
    assert run_cli("tagged", "--tags", "max")[1] == f'{a}: max, say "hi"\n{b}: max\n'
    assert run_cli("tagged", "--ugly", "max")[1] == (
        f' -a "max" -a "say \\"hi\\"" "{a}"\n -a "max" "{b}"\n'
    )


def test_conflicting_output_flags(run_cli, album):
    with pytest.raises(SystemExit) as excinfo:
        run_cli("tagged", "--nul", "--tags", "max")
    assert excinfo.value.code == 2


def test_malformed_expression_fails(run_cli, album):
    code, out, err = run_cli("tagged", "--expr", "(max")
    assert code == 1
    assert out == ""
    assert err.startswith("tagged: ")


def test_rate_and_query_ratings(run_cli, album):
    a, b, _c = album
    run_cli("rate", "3", str(a))
    run_cli("rate", "5", str(a))
    run_cli("import", str(b))
    assert run_cli("tagged", "r:3")[1] == f"{a}\n"
    assert run_cli("tagged", "r:")[1] == f"{b}\n"

    run_cli("rate", "-f", "5", str(a))
    assert run_cli("tagged", "r:5")[1] == f"{a}\n"

    run_cli("rate", "-f", "null", str(a))
    assert run_cli("tagged", "r:")[1] == f"{a}\n{b}\n"


def test_invalid_rating_is_usage_error(run_cli, album):
    with pytest.raises(SystemExit) as excinfo:
        run_cli("rate", "7", str(album[0]))
    assert excinfo.value.code == 2


def test_tag_copies_tags_from_identical_photo(run_cli, album):
    a, _b, c = album
    run_cli("tag", "-a", "max", str(a))
    run_cli("rate", "4", str(a))
    run_cli("tag", "-a", "boots", str(c))
    assert run_cli("tagged", "--tags", "boots")[1] == f"{c}: boots, max\n"
    assert run_cli("tagged", "r:4")[1] == f"{a}\n{c}\n"


def test_untagged(run_cli, album):
    a, b, c = album
    run_cli("tag", "-a", "max", str(a))
    run_cli("import", str(b))
    code, out, _err = run_cli("untagged", str(a.parent))
    assert code == 0
    assert out == f"{b}\n{c}\n"
    assert run_cli("untagged", "--directories", str(a.parent))[1] == f"{a.parent}\n"


def test_untagged_recurse(run_cli, make_image, tmp_path):
    nested = make_image("top/sub/x.png").resolve()
    top = tmp_path.resolve() / "top"
    assert run_cli("untagged", str(top))[1] == ""
    assert run_cli("untagged", "-r", str(top))[1] == f"{nested}\n"


def test_duplicates(run_cli, album):
    a, b, c = album
    run_cli("import", str(a.parent))
    code, out, _err = run_cli("duplicates")
    assert code == 0
    lines = out.splitlines()
    assert len(lines) == 3
    assert lines[0].startswith("Group 1 (") and lines[0].endswith("):")
    assert lines[1:] == [f"  {a}", f"  {c}"]


def test_purge(run_cli, album):
    a, b, _c = album
    run_cli("import", str(a.parent))
    b.unlink()

    assert run_cli("purge", "-n", str(a.parent))[1] == f"{b}\n"
    assert run_cli("tagged", "r:")[1].count("\n") == 3

    assert run_cli("purge", str(a.parent)) == (0, "", "")
    assert run_cli("tagged", "r:")[1].count("\n") == 2

    assert run_cli("purge", "-f", "-v", str(a.parent))[1].count("\n") == 2
    assert run_cli("tagged", "r:")[1] == ""


def test_import_reports_unreadable_files(run_cli, tmp_path, album):
    broken = tmp_path / "broken.jpg"
    broken.write_bytes(b"not an image")
    code, _out, err = run_cli("import", str(broken), str(album[0]))
    assert code == 1
    assert "broken.jpg" in err
    assert run_cli("tagged", "r:")[1] == f"{album[0]}\n"


def test_move_directory(run_cli, album):
    a = album[0]
    run_cli("tag", "-a", "max", str(a))
    moved = a.parent.with_name("moved")
    a.parent.rename(moved)

    assert run_cli("move-dir", str(a.parent), str(moved))[1] == "1 photos moved\n"
    assert run_cli("tagged", "max")[1] == f"{moved / a.name}\n"


def test_unknown_option_outside_tagged(run_cli, album):
    with pytest.raises(SystemExit):
        run_cli("import", "--bogus", str(album[0]))


def test_normalize_args():
    assert normalize_args(["max", "-boots", "r:12", "<2020", "-=2020-06"]) == (
        '"max" -"boots" r:12 <2020 -=2020-06'
    )
    assert normalize_arg("max boots") == '"max boots"'
    assert normalize_arg("-") == '"-"'
    assert normalize_arg("r:7") == '"r:7"'


def test_normalize_rejects_double_quotes():
    with pytest.raises(QueryError):
        normalize_arg('say "hi"')


def test_shell_quote():
    assert shell_quote("plain") == '"plain"'
    assert shell_quote('a"b$c`d\\e') == '"a\\"b\\$c\\`d\\\\e"'


def test_parse_rating():
    assert parse_rating("null") is None
    assert parse_rating("3") == 3


def test_list_tags(run_cli, album, make_image):
    a, b, _c = album
    other = make_image("elsewhere/x.png", seed=7).resolve()
    run_cli("tag", "-a", "max", "-a", "boots", str(a))
    run_cli("tag", "-a", "zoo", str(other))
    assert run_cli("tags") == (0, "boots\nmax\nzoo\n", "")
    assert run_cli("tags", str(a.parent))[1] == "boots\nmax\n"
    assert run_cli("tags", str(b.parent.parent / "nowhere"))[1] == ""


def test_locked_records_survive_forced_purge(run_cli, album):
    a, b, _c = album
    run_cli("import", str(a), str(b))
    assert run_cli("lock", str(a))[0] == 0

    assert run_cli("purge", "-f", "-v", str(a.parent))[1] == f"{b}\n"
    assert run_cli("tagged", "r:")[1] == f"{a}\n"

    run_cli("lock", "--unlock", str(a))
    assert run_cli("purge", "-f", "-v", str(a.parent))[1] == f"{a}\n"


def test_duplicates_use_configured_sort_keys(run_cli, album, tmp_path, monkeypatch):
    a, _b, c = album
    settings = tmp_path / "sorted.json"
    settings.write_text(
        json.dumps(
            {
                "logging": {"dir": str(tmp_path / "logs")},
                "sorting": {"defaults": [{"field": "file_name", "asc": False}]},
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv(SETTINGS_ENV_VAR, str(settings))
    run_cli("import", str(a.parent))
    assert run_cli("duplicates")[1].splitlines()[1:] == [f"  {c}", f"  {a}"]
