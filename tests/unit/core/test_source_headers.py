"""License headers of the package sources."""

import re

import pytest


@pytest.fixture(scope="module")
def project_root(tests_dir):
    return tests_dir.parent


def test_headers_name_project_authors(project_root):
    pyproject = (project_root / "pyproject.toml").read_text()
    authors = re.search(r'authors = \[\{ name = "([^"]+)" \}\]', pyproject).group(1)
    sources = sorted((project_root / "src" / "hydrobgc").rglob("*.py"))
    assert sources
    for path in sources:
        head = path.read_text().splitlines()[:2]
        assert head[0] == "# SPDX-License-Identifier: GPL-3.0-or-later", path
        assert head[1].startswith("# Copyright (C)") and head[1].endswith(authors), path
