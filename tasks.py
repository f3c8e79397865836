from invoke import task


@task
def lint(c):
    c.run("ruff check src tests")


@task
def format_check(c):
    c.run("ruff format --check src tests")


@task
def test(c):
    c.run("pytest")


@task
def serve(c, port=8000):
    c.run(f"topic-arena serve --port {port}", pty=True)


@task
def ci(c):
    lint(c)
    format_check(c)
    test(c)
