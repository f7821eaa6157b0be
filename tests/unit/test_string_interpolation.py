from dcompose.UTILS.string_interpolation import EnvironmentInterpolator


def test_bare_and_braced_variables():
    context = {'NAME': 'web', 'TAG': '1.0'}
    assert EnvironmentInterpolator.interpolate("$NAME:${TAG}", context) == "web:1.0"


def test_unset_variable_is_empty():
    assert EnvironmentInterpolator.interpolate("a${UNSET}b$ALSO_UNSET", {}) == "ab"


def test_modifiers():
    context = {'SET': 'x', 'EMPTY': ''}
    assert EnvironmentInterpolator.interpolate("${EMPTY:-default}", context) == "default"
    assert EnvironmentInterpolator.interpolate("${SET:-default}", context) == "x"
    assert EnvironmentInterpolator.interpolate("${SET:+alt}", context) == "alt"
    assert EnvironmentInterpolator.interpolate("${EMPTY:+alt}", context) == ""


def test_escaped_dollar():
    assert EnvironmentInterpolator.interpolate("cost $$5", {}) == "cost $5"
