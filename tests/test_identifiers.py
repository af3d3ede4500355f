"""Tests for public id and tag helpers."""

import pytest

from asset_chat.identifiers import (
    base_name_from_public_id,
    build_move_target,
    folder_from_public_id,
    normalize_public_id,
    normalize_tags_csv,
    trim_slashes,
)


class TestNormalizePublicId:

    def test_strips_extension_from_last_segment(self):
        assert normalize_public_id("photos/cat.jpg") == "photos/cat"
        assert normalize_public_id("cat.PNG") == "cat"

    def test_folder_segments_untouched(self):
        assert normalize_public_id("v1.2/cat.jpg") == "v1.2/cat"
        assert normalize_public_id("a.b/c") == "a.b/c"

    def test_strips_only_one_extension(self):
        assert normalize_public_id("photos/my.cat.jpg") == "photos/my.cat"
        assert normalize_public_id("archive.tar.gz") == "archive.tar"

    def test_identity_without_extension(self):
        assert normalize_public_id("photos/cat") == "photos/cat"
        assert normalize_public_id("") == ""

    @pytest.mark.parametrize("value", [
        "photos/cat.jpg", "a.b/c.d", "plain", "x/", ".hidden", "a/b/c.",
    ])
    def test_idempotent(self, value):
        once = normalize_public_id(value)
        assert normalize_public_id(once) == once


class TestBaseName:

    def test_last_segment_without_extension(self):
        assert base_name_from_public_id("photos/2024/cat.jpg") == "cat"
        assert base_name_from_public_id("cat") == "cat"


class TestBuildMoveTarget:

    def test_joins_folder_and_base_name(self):
        assert build_move_target("archive", "photos/cat.jpg") == "archive/cat"

    def test_trims_folder_slashes(self):
        assert build_move_target("/archive/2024/", "cat") == "archive/2024/cat"

    @pytest.mark.parametrize("folder,public_id", [
        ("archive", "cat"), ("/a/", "b/c"), ("//x//", "y.png"), ("deep/er", "/lead/z"),
    ])
    def test_shape(self, folder, public_id):
        target = build_move_target(folder, public_id)
        assert not target.startswith("/")
        assert not target.endswith("/")
        assert "//" not in target


class TestFolderHelpers:

    def test_folder_from_public_id(self):
        assert folder_from_public_id("a/b/c") == "a/b"
        assert folder_from_public_id("c") is None
        assert folder_from_public_id(None) is None

    def test_trim_slashes(self):
        assert trim_slashes("//a/b//") == "a/b"
        assert trim_slashes("") == ""


class TestNormalizeTagsCsv:

    def test_mixed_separators(self):
        assert normalize_tags_csv("a, b  c") == "a,b,c"
        assert normalize_tags_csv("summer, beach") == "summer,beach"

    def test_empty(self):
        assert normalize_tags_csv("") == ""
        assert normalize_tags_csv(" ,  , ") == ""

    def test_idempotent_on_csv(self):
        assert normalize_tags_csv(normalize_tags_csv("x,y,z")) == "x,y,z"
