from cashflow.errors import TransportError, UnauthenticatedError
from cashflow.state import Resource, Status, load_into


def test_stale_response_does_not_clobber_newer_one():
    resource = Resource("forecast")
    first = resource.begin((30, False))
    second = resource.begin((30, True))

    assert first.cancel.cancelled
    assert resource.resolve(second, "safe")
    assert resource.resolve(first, "unsafe") is False
    assert resource.data == "safe"
    assert resource.params == (30, True)


def test_stale_failure_is_ignored_while_newer_request_is_pending():
    resource = Resource("transactions", empty=())
    first = resource.begin("all")
    resource.begin("range")

    assert resource.fail(first, "boom") is False
    assert resource.status is Status.LOADING
    assert resource.error is None


def test_load_into_reaches_terminal_state_on_failure():
    resource = Resource("tags", empty=())

    def fetch(cancel):
        raise TransportError("down")

    assert load_into(resource, fetch, error_message="Failed to load tags") is False
    assert resource.status is Status.ERROR
    assert resource.error == "Failed to load tags"
    assert resource.data == ()


def test_load_into_routes_unauthenticated_to_callback():
    resource = Resource("tags", empty=())
    expired = []

    def fetch(cancel):
        raise UnauthenticatedError("401")

    load_into(resource, fetch, error_message="Failed", on_unauthenticated=lambda: expired.append(True))

    assert expired == [True]
    assert resource.error is None
    assert resource.status is Status.ERROR


def test_load_into_stores_data():
    resource = Resource("tags", empty=())
    assert load_into(resource, lambda cancel: ("a", "b"), error_message="Failed")
    assert resource.status is Status.SUCCESS
    assert resource.data == ("a", "b")
