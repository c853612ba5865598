from pathlib import Path

from behave import given, when, then

from kontent_perf.sut.factory import SUTFactory


def _table_to_dict(table) -> dict:
    return {row["name"].strip(): row["value"].strip() for row in table}


def _build(context, config_path=None, overrides=None):
    context.run_cfg = None
    try:
        context.run_cfg = SUTFactory(environ=context.environ).build(config_path, overrides)
    except Exception as e:
        context.error = e


@given("the environment variables:")
def step_environ(context):
    context.environ = _table_to_dict(context.table)


@given('the config file "{path}":')
def step_config_file(context, path):
    Path(path).write_text(context.text, encoding="utf-8")


@when("I build the run configuration")
def step_build(context):
    _build(context)


@when('I build the run configuration from "{path}" with overrides:')
def step_build_with_overrides(context, path):
    _build(context, path, _table_to_dict(context.table))


@then("the iterations are {n:d}")
def step_check_iterations(context, n):
    assert context.error is None, f"unexpected error {context.error!r}"
    assert context.run_cfg.iterations == n


@then('the source file is "{name}"')
def step_check_source(context, name):
    assert context.run_cfg.source_file == name


@then('the output path is "{path}"')
def step_check_output(context, path):
    assert context.run_cfg.json_path == path


@then('the content type codename is "{codename}"')
def step_check_type(context, codename):
    assert context.run_cfg.content_item.type_codename == codename


@then('the environment id is "{environment_id}"')
def step_check_environment_id(context, environment_id):
    assert context.run_cfg.sut.environment_id == environment_id


@then("the configuration is rejected")
def step_check_rejected(context):
    assert isinstance(context.error, ValueError), f"got {context.error!r}"


@then("the redacted snapshot hides the API key")
def step_check_redacted(context):
    snapshot = context.run_cfg.sut.redacted()
    assert snapshot["KONTENT_API_KEY"] == "***"
    assert "key-1" not in str(snapshot)


@when('I build the run configuration from "{path}"')
def step_build_from_file(context, path):
    _build(context, path)
