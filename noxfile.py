import nox

nox.options.sessions = ["tests"]

LOCUST_HOST = "http://localhost:8000"


def _install(session: nox.Session) -> None:
    session.install("-e", ".[test]")


@nox.session(python="3.12")
def tests(session: nox.Session) -> None:
    """Run the full suite against the in-memory providers."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python="3.12")
def tests_domain(session: nox.Session) -> None:
    """Aggregates and pure helpers only."""
    _install(session)
    session.run("pytest", "tests/packing/domain/", *session.posargs)


@nox.session(python="3.12")
def loadtest(session: nox.Session) -> None:
    """Headless mixed workload against an API started separately.

    Override the target with ``nox -s loadtest -- <host>``.
    """
    _install(session)
    host = session.posargs[0] if session.posargs else LOCUST_HOST
    session.run(
        "locust",
        "-f",
        "loadtests/locustfile.py",
        "MixedWorkloadUser",
        "--headless",
        "--users=10",
        "--spawn-rate=2",
        "--run-time=60s",
        f"--host={host}",
    )
