"""
Tests for path mapping, site URL parsing and site/mode selection.
"""
import unittest
from pathlib import Path
from unittest import mock

from sitemirror.core.path_mapper import resolve_local_path, strip_site_prefix
from sitemirror.errors import ConfigError
from sitemirror.models import Mode
from sitemirror.operations.sites import (
    normalize_site_url, select_mode, select_sites, site_name, site_prefix,
)


class TestPathMapper(unittest.TestCase):

    def test_strips_site_prefix(self):
        local = resolve_local_path("/sites/Proj/Shared Documents/a/b.txt", "/sites/Proj", "C:/out")
        self.assertEqual(local.as_posix(), "C:/out/Shared Documents/a/b.txt")

    def test_prefix_with_trailing_slash(self):
        self.assertEqual(strip_site_prefix("/sites/Proj/a.txt", "/sites/Proj/"), "a.txt")

    def test_missing_prefix_uses_whole_path(self):
        """A path outside the site degrades to the full path, relative."""
        local = resolve_local_path("/other/place/a.txt", "/sites/Proj", "/mirror")
        self.assertEqual(local, Path("/mirror/other/place/a.txt"))

    def test_prefix_matches_whole_segment_only(self):
        self.assertEqual(strip_site_prefix("/sites/Project/a.txt", "/sites/Proj"),
                         "sites/Project/a.txt")

    def test_parent_references_are_dropped(self):
        local = resolve_local_path("/sites/Proj/../../etc/passwd", "/sites/Proj", "/mirror")
        self.assertEqual(local, Path("/mirror/etc/passwd"))


class TestSiteUrls(unittest.TestCase):

    def test_normalize_drops_path_below_site(self):
        self.assertEqual(
            normalize_site_url("https://host.example.com/sites/Proj/Shared Documents/x.docx"),
            "https://host.example.com/sites/Proj",
        )

    def test_normalize_leaves_non_site_urls_alone(self):
        for url in ("https://host.example.com/teams/X", "not a url", "/sites/Proj"):
            with self.subTest(url=url):
                self.assertEqual(normalize_site_url(url), url)

    def test_site_prefix(self):
        self.assertEqual(site_prefix("https://h/sites/Proj/Docs"), "/sites/Proj")
        self.assertEqual(site_prefix("/sites/Proj/"), "/sites/Proj")
        self.assertEqual(site_prefix("https://h/teams/X/"), "/teams/X")

    def test_site_name(self):
        self.assertEqual(site_name("https://h/sites/Finance"), "Finance")
        self.assertEqual(site_name("https://h/sites/My Site"), "My_Site")


class TestSelection(unittest.TestCase):

    SITES = ["https://h/sites/Alpha", "https://h/sites/Beta", "https://h/sites/Gamma"]

    def test_select_all(self):
        self.assertEqual(select_sites(self.SITES, ["all"]), self.SITES)

    def test_select_by_number_and_name(self):
        self.assertEqual(select_sites(self.SITES, ["3,1"]), [self.SITES[2], self.SITES[0]])
        self.assertEqual(select_sites(self.SITES, ["Beta", "2"]), [self.SITES[1]])

    def test_select_rejects_unknown(self):
        with self.assertRaises(ConfigError):
            select_sites(self.SITES, ["Delta"])
        with self.assertRaises(ConfigError):
            select_sites(self.SITES, ["4"])

    def test_no_sites_configured(self):
        with self.assertRaises(ConfigError):
            select_sites([], ["all"])

    def test_non_interactive_defaults_to_all(self):
        with mock.patch("sitemirror.operations.sites.sys.stdin") as stdin:
            stdin.isatty.return_value = False
            self.assertEqual(select_sites(self.SITES), self.SITES)

    def test_interactive_prompt(self):
        with mock.patch("sitemirror.operations.sites.sys.stdin") as stdin, \
                mock.patch("builtins.input", side_effect=["9", "2"]), \
                mock.patch("builtins.print"):
            stdin.isatty.return_value = True
            self.assertEqual(select_sites(self.SITES), [self.SITES[1]])

    def test_select_mode(self):
        self.assertIs(select_mode("recheck"), Mode.RECHECK)
        self.assertIs(select_mode("4"), Mode.UPDATE)
        self.assertIs(select_mode(" Resume "), Mode.RESUME)
        with self.assertRaises(ConfigError):
            select_mode("mirror")


if __name__ == "__main__":
    unittest.main()
