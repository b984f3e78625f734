"""Unit tests for t0ggles_node.utilities.assets — asset packaging step."""

from t0ggles_node.utilities.assets import copy_assets


class TestCopyAssets:

    def test_default_root_ships_icon(self, tmp_path):
        copied = copy_assets(dest=str(tmp_path / "dist"))
        assert copied == [tmp_path / "dist" / "t0ggles_node" / "assets" / "t0ggles.png"]
        assert copied[0].read_bytes().startswith(b"\x89PNG")

    def test_missing_assets_skipped(self, tmp_path):
        assert copy_assets(root=str(tmp_path)) == []
        assert not (tmp_path / "dist").exists()

    def test_custom_asset_list(self, tmp_path):
        root = tmp_path / "project"
        (root / "t0ggles_node" / "icons").mkdir(parents=True)
        (root / "t0ggles_node" / "icons" / "dark.svg").write_text("<svg/>", encoding="utf-8")

        copied = copy_assets(root=str(root), assets=["icons/dark.svg", "icons/missing.svg"])

        assert copied == [root / "dist" / "t0ggles_node" / "icons" / "dark.svg"]
        assert copied[0].read_text(encoding="utf-8") == "<svg/>"

    def test_overwrites_existing(self, tmp_path):
        root = tmp_path / "project"
        (root / "t0ggles_node" / "assets").mkdir(parents=True)
        (root / "t0ggles_node" / "assets" / "t0ggles.png").write_bytes(b"new")
        stale = root / "dist" / "t0ggles_node" / "assets" / "t0ggles.png"
        stale.parent.mkdir(parents=True)
        stale.write_bytes(b"old")

        copy_assets(root=str(root))
        assert stale.read_bytes() == b"new"
