from __future__ import annotations


def pytest_addoption(parser):
    parser.addoption(
        "--run-hyperfine",
        action="store_true",
        default=False,
        help="Run tests that drive a real hyperfine binary.",
    )
