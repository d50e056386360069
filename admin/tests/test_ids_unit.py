import re

import pytest

from admin.app.errors import CatalogError, InvalidItemIdError
from admin.app.utils.ids import (
    generate_item_id,
    is_valid_item_id,
    repo_item_id,
    slugify,
    validate_item_id,
)


class TestIds:
    def test_slugify(self):
        assert slugify("Hello, World!") == "hello-world"
        assert slugify("--Flutter  UI kit--") == "flutter-ui-kit"
        assert slugify("a" * 40) == "a" * 30
        assert slugify("中文标题") == ""

    def test_generate_item_id_shape(self):
        item_id = generate_item_id("My Cool Repo")
        assert re.fullmatch(r"my-cool-repo-[A-Za-z0-9_-]{6}", item_id)

    def test_empty_slug_becomes_item(self):
        assert generate_item_id("!!!").startswith("item-")
        assert len(generate_item_id("")) == len("item-") + 6

    def test_ids_are_random(self):
        assert len({generate_item_id("x") for _ in range(20)}) == 20

    def test_repo_item_id_is_deterministic(self):
        assert repo_item_id("Acme", "Widget") == "acme-widget"
        assert repo_item_id("Acme", "Widget") == repo_item_id("acme", "widget")

    def test_generated_ids_are_valid(self):
        assert is_valid_item_id(generate_item_id("My Cool Repo"))
        assert is_valid_item_id(generate_item_id(""))
        assert is_valid_item_id(repo_item_id("vercel", "next.js"))


class TestValidateItemId:
    @pytest.mark.parametrize("item_id", ["acme-widget", "item-Ab_9-z", "vercel-next.js", "a"])
    def test_accepts_file_safe_ids(self, item_id):
        assert validate_item_id(item_id) == item_id

    @pytest.mark.parametrize(
        "item_id", [".", "..", "a/b", "../../escaped", "a\\b", "", "-lead", ".hidden", "a b", "x\n"]
    )
    def test_rejects_path_like_ids(self, item_id):
        with pytest.raises(InvalidItemIdError):
            validate_item_id(item_id)

    def test_error_is_a_catalog_error(self):
        with pytest.raises(CatalogError):
            validate_item_id("..")
        assert not is_valid_item_id(None)
