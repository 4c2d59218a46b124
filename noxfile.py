import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]


def _install(session: nox.Session) -> None:
    """Install the project with test extras into the nox virtualenv."""
    session.install("-e", ".[test]")


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run full test suite across Python versions."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS)
def tests_domain(session: nox.Session) -> None:
    """Run pure-logic tests only (no adapters, no HTTP)."""
    _install(session)
    session.run(
        "pytest",
        "tests/discounts/domain/",
        "tests/inventory/domain/",
        "tests/ordering/domain/",
        "tests/payments/domain/",
        "tests/shared/domain/",
    )
