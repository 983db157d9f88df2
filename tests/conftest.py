# =============================================================================
# Pytest Configuration and Fixtures
# =============================================================================
# Shared fixtures for the readmail test suite.
# =============================================================================

import pytest
import tempfile
from pathlib import Path

from readmail.config import Config
from readmail.core import Account

from fakes import FakeSession, leaf, message, multipart


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_account():
    """Create a sample Account for testing."""
    return Account(
        name="test",
        user="test@example.com",
        imap_host="imap.example.com",
        imap_port=993,
        imap_security="ssl",
    )


@pytest.fixture
def sample_config(sample_account):
    """A valid configuration with a password, as if set in the environment."""
    return Config(account=sample_account, password="secret")


@pytest.fixture
def plain_email():
    """A single-part text/plain message."""
    return message("Plain", leaf("text/plain; charset=utf-8", "Just text.\r\n"))


@pytest.fixture
def alternative_email():
    """multipart/alternative with the HTML rendering listed first."""
    return message(
        "Newsletter",
        multipart(
            "alternative",
            "alt-boundary",
            leaf("text/html", "<p>hello <b>world</b></p>"),
            leaf("text/plain", "hello world"),
        ),
    )


@pytest.fixture
def html_only_email():
    """A message with no text/plain part anywhere."""
    return message(
        "Only HTML",
        multipart(
            "mixed",
            "mixed-boundary",
            leaf("text/html", "<p>hi</p>"),
            leaf("application/pdf", "JVBERi0xLjQK", "Content-Transfer-Encoding: base64\r\n"),
        ),
    )


@pytest.fixture
def inbox(alternative_email, html_only_email):
    """Three messages with subjects A, B and C. B is the alternative one."""
    return FakeSession([
        message("A", leaf("text/plain", "first")),
        alternative_email.replace(b"Subject: Newsletter", b"Subject: B"),
        html_only_email.replace(b"Subject: Only HTML", b"Subject: C"),
    ])
