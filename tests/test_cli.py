import json

import pytest
from typer.testing import CliRunner

from quotevault.ids import SequentialIdGenerator
from quotevault.main import LibraryManager, app

runner = CliRunner()


@pytest.fixture
def cli_lib(db_file, monkeypatch):
    monkeypatch.setenv("QUOTEVAULT_DB_FILE", db_file)
    LibraryManager.reset()
    lib = LibraryManager.get_instance()
    lib.id_generator = SequentialIdGenerator("id")
    yield lib
    LibraryManager.reset()


def test_books_empty(cli_lib):
    result = runner.invoke(app, ["books"])
    assert result.exit_code == 0
    assert "No books in library." in result.stdout


def test_add_book_success(cli_lib):
    result = runner.invoke(app, ["add-book", "Dune", "Frank Herbert"])
    assert result.exit_code == 0
    assert "Successfully added: Dune by Frank Herbert [id-1]" in result.stdout
    assert cli_lib.get_book("id-1").title == "Dune"


def test_add_book_with_cover(cli_lib, tmp_path):
    cover = tmp_path / "cover.jpg"
    cover.write_bytes(b"\xff\xd8\xff")
    result = runner.invoke(app, ["add-book", "Dune", "Herbert", "--cover", str(cover)])
    assert result.exit_code == 0
    assert cli_lib.get_book("id-1").cover_image == b"\xff\xd8\xff"


def test_add_book_blank_title_fails(cli_lib):
    result = runner.invoke(app, ["add-book", " ", "Herbert"])
    assert result.exit_code == 1
    assert "Error: Title cannot be empty." in result.stdout
    assert cli_lib.list_books() == []


def test_books_lists_quote_counts(cli_lib):
    book = cli_lib.add_book("Dune", "Herbert")
    cli_lib.add_quote("Fear is the mind-killer", book.id)

    result = runner.invoke(app, ["books"])
    assert result.exit_code == 0
    assert "id-1 - Dune by Herbert (1 quotes)" in result.stdout


def test_books_json_output(cli_lib):
    cli_lib.add_book("Dune", "Herbert")
    result = runner.invoke(app, ["--output", "json", "books"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == [{"id": "id-1", "title": "Dune", "author": "Herbert", "quote_count": 0}]


def test_remove_book_cascades(cli_lib):
    book = cli_lib.add_book("Dune", "Herbert")
    cli_lib.add_quote("one", book.id)
    cli_lib.add_quote("two", book.id)

    result = runner.invoke(app, ["remove-book", book.id])
    assert result.exit_code == 0
    assert f"Book {book.id} has been removed along with 2 quote(s)." in result.stdout
    assert cli_lib.list_quotes() == []


def test_remove_book_not_found(cli_lib):
    result = runner.invoke(app, ["remove-book", "nonexistent"])
    assert result.exit_code == 0
    assert "Book nonexistent not found." in result.stdout


def test_find_book(cli_lib):
    book = cli_lib.add_book("Dune", "Herbert")
    result = runner.invoke(app, ["find-book", book.id])
    assert result.exit_code == 0
    assert "Book Found" in result.stdout
    assert "Title: Dune" in result.stdout
    assert "Author: Herbert" in result.stdout
    assert "Quotes: 0" in result.stdout

    result = runner.invoke(app, ["find-book", "nonexistent"])
    assert "Book nonexistent not found." in result.stdout


def test_search_books(cli_lib):
    cli_lib.add_book("Dune", "Herbert")
    cli_lib.add_book("Emma", "Austen")

    result = runner.invoke(app, ["search-books", "aust"])
    assert "Emma by Austen" in result.stdout
    assert "Dune" not in result.stdout

    result = runner.invoke(app, ["search-books", "tolkien"])
    assert "No matching books." in result.stdout


def test_add_quote_and_list(cli_lib):
    book = cli_lib.add_book("Dune", "Herbert")
    result = runner.invoke(app, [
        "add-quote", book.id, "Fear is the mind-killer",
        "--page", "8", "--chapter", "1", "--tag", "fear", "--tag", "litany",
    ])
    assert result.exit_code == 0
    assert "Quote added [id-2]" in result.stdout

    quote = cli_lib.get_quote("id-2")
    assert quote.page == 8
    assert quote.chapter == "1"
    assert quote.tags == ["fear", "litany"]

    result = runner.invoke(app, ["quotes"])
    assert 'id-2 - "Fear is the mind-killer" — Herbert, Dune (Page 8)' in result.stdout


def test_add_quote_unknown_book(cli_lib):
    result = runner.invoke(app, ["add-quote", "nope", "Orphan"])
    assert result.exit_code == 1
    assert "Error: Book nope not found." in result.stdout


def test_add_quote_negative_page(cli_lib):
    book = cli_lib.add_book("Dune", "Herbert")
    result = runner.invoke(app, ["add-quote", book.id, "Text", "--page=-1"])
    assert result.exit_code == 1
    assert "Page must be a non-negative integer." in result.stdout


def test_quotes_empty_messages(cli_lib):
    result = runner.invoke(app, ["quotes"])
    assert "No quotes yet." in result.stdout

    result = runner.invoke(app, ["quotes", "--favorites"])
    assert "No matching quotes." in result.stdout

    result = runner.invoke(app, ["quotes", "--book", "missing"])
    assert "Book missing not found." in result.stdout


def test_favorite_toggle(cli_lib):
    book = cli_lib.add_book("Dune", "Herbert")
    quote = cli_lib.add_quote("Fear", book.id)

    result = runner.invoke(app, ["favorite", quote.id])
    assert f"Quote {quote.id} added to favorites." in result.stdout
    result = runner.invoke(app, ["quotes", "--favorites"])
    assert '* "Fear"' in result.stdout

    result = runner.invoke(app, ["favorite", quote.id])
    assert f"Quote {quote.id} removed from favorites." in result.stdout

    result = runner.invoke(app, ["favorite", "missing"])
    assert "Quote missing not found." in result.stdout


def test_remove_quote(cli_lib):
    book = cli_lib.add_book("Dune", "Herbert")
    quote = cli_lib.add_quote("Fear", book.id)

    result = runner.invoke(app, ["remove-quote", quote.id])
    assert f"Quote {quote.id} has been removed." in result.stdout
    result = runner.invoke(app, ["remove-quote", quote.id])
    assert f"Quote {quote.id} not found." in result.stdout


def test_share(cli_lib):
    book = cli_lib.add_book("Dune", "Frank Herbert")
    quote = cli_lib.add_quote("Fear is the mind-killer.", book.id, page=8)

    result = runner.invoke(app, ["share", quote.id])
    assert result.exit_code == 0
    assert result.stdout == '"Fear is the mind-killer."\n\n— Frank Herbert, Dune (Page 8)\n'


def test_daily(cli_lib):
    result = runner.invoke(app, ["daily"])
    assert "No quotes available." in result.stdout

    book = cli_lib.add_book("Dune", "Herbert")
    cli_lib.add_quote("Fear", book.id)
    result = runner.invoke(app, ["daily"])
    assert '"Fear"' in result.stdout
    assert "— Herbert, Dune" in result.stdout


def test_stats(cli_lib):
    book = cli_lib.add_book("Dune", "Herbert")
    cli_lib.add_quote("Fear", book.id)

    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert "Total Books: 1" in result.stdout
    assert "Total Quotes: 1" in result.stdout
    assert "Unique Authors: 1" in result.stdout


def test_state_survives_new_instance(cli_lib, db_file):
    runner.invoke(app, ["add-book", "Dune", "Herbert"])
    LibraryManager.reset()

    result = runner.invoke(app, ["books"])
    assert "Dune by Herbert" in result.stdout


def test_corrupt_database_starts_empty(db_file, monkeypatch):
    with open(db_file, "wb") as f:
        f.write(b"this is not an sqlite database" * 100)
    monkeypatch.setenv("QUOTEVAULT_DB_FILE", db_file)
    LibraryManager.reset()

    result = runner.invoke(app, ["books"])
    assert result.exit_code == 0
    assert "No books in library." in result.stdout
    LibraryManager.reset()
