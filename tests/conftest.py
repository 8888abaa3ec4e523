"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest


@pytest.fixture
def mock_dpkg_output() -> str:
    """Sample dpkg-query output for testing."""
    return """firefox\t128.0\t204800\tMozilla Firefox web browser
neovim\t0.9.5\t51200\tVim-based text editor
libgtk-3-0\t3.24.41\t10240\tGTK graphical toolkit
python3\t3.11.4\t25600\tInteractive high-level object-oriented language
curl\t8.5.0\t512\tCommand line tool for transferring data"""


@pytest.fixture
def mock_apt_upgradable_output() -> str:
    """Sample ``apt list --upgradable`` output for testing."""
    return """Listing... Done
firefox/jammy-updates 129.0+build1-0ubuntu1 amd64 [upgradable from: 128.0+build2-0ubuntu1]
curl/jammy-security 8.5.0-2ubuntu10.1 amd64 [upgradable from: 8.5.0-2ubuntu10]"""


@pytest.fixture
def mock_empty_output() -> str:
    """Empty output for testing edge cases."""
    return ""


@pytest.fixture
def mock_malformed_output() -> str:
    """Malformed output for testing error handling."""
    return """firefox
incomplete_line\t
\t\t\t"""


@pytest.fixture
def mock_flatpak_output() -> str:
    """Sample flatpak list output for testing."""
    return """com.spotify.Client\t1.2.31.1205\tSpotify\t1.2 GB
org.mozilla.firefox\t128.0\tFirefox\t500 MB
org.gnome.Calculator\t46.1\tCalculator\t50 MB"""


@pytest.fixture
def mock_pacman_info_output() -> str:
    """Sample ``pacman -Qi`` output with two packages."""
    return """Name            : bash
Version         : 5.2.026-2
Description     : The GNU Bourne Again shell
URL             : https://www.gnu.org/software/bash/bash.html
Licenses        : GPL-3.0-or-later
Packager        : Levente Polyak <anthraxx@archlinux.org>
Installed Size  : 8.24 MiB
Depends On      : readline  libreadline.so=8-64  glibc
                  ncurses
Required By     : bzip2  gzip
Install Date    : Sat 06 Jul 2024 10:00:00 AM UTC

Name            : vim
Version         : 9.1.0-1
Description     : Vi Improved, a highly configurable editor
URL             : https://www.vim.org
Licenses        : custom:vim
Packager        : Anatol Pomozov <anatol.pomozov@gmail.com>
Installed Size  : 4.00 MiB
Depends On      : None
Required By     : None
Install Date    : Sun 07 Jul 2024 11:00:00 AM UTC
"""


@pytest.fixture
def config_home(tmp_path: Path):
    """Point XDG_CONFIG_HOME at a temporary directory."""
    with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
        yield tmp_path
