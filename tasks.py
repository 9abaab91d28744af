from invoke import task


@task
def clean(c, bytecode=False, extra=""):
    patterns = ["build", "dist", "*.egg-info"]
    if bytecode:
        patterns.append("**/*.pyc")
    if extra:
        patterns.append(extra)
    for pattern in patterns:
        c.run("rm -rf {}".format(pattern))


@task
def build(c):
    c.run("python -m build")


@task
def hooks(c):
    c.run("pre-commit install")


@task
def formatters(c):
    c.run("pre-commit run")


@task
def formatall(c):
    c.run("pre-commit run --all-files")


@task
def devinstall(c):
    c.run("pip install -e .[test]")


@task
def notebooks(c):
    c.run("jupytext --to notebook notebooks/*.py")


@task
def simulate(c, days=3650, population=67000000):
    c.run(
        "python -c 'from tbdemic.config import create_default_config; "
        "from tbdemic.engine import SimulationEngine; "
        f"config = create_default_config(duration={days}, total_population={population}); "
        "state = SimulationEngine(config).run(progress=True); "
        "print(state.metrics)'"
    )


@task
def tests(c):
    c.run("pytest . -n auto -vv")
