import os
import shutil
import tempfile


def before_scenario(context, scenario):
    # every scenario writes into its own scratch directory
    context.orig_cwd = os.getcwd()
    context.workdir = tempfile.mkdtemp(prefix="kontent-perf-")
    os.chdir(context.workdir)

    context.saved_env = {}
    context.error = None
    context.result = None


def after_scenario(context, scenario):
    os.chdir(context.orig_cwd)
    shutil.rmtree(context.workdir, ignore_errors=True)

    for name, value in context.saved_env.items():
        if value is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = value
