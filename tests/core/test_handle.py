import pytest


def noop(*args, **kwargs):
    pass


class TestHandle:
    """
    __call__
    """

    def test_call_with_success_attach_handle(self, registry):
        calls = []
        handle = registry.observe("clock", noop)

        detach = handle(calls.append)

        assert handle.is_attached
        assert len(calls) == 1

        detach()
        assert not handle.is_attached

    """
    attach / detach
    """

    def test_attach_with_success_return_detach_function(self, registry):
        teardowns = []
        handle = registry.observe("clock", noop)

        detach = handle.attach(lambda _: lambda: teardowns.append("clock"))
        assert handle.is_attached

        detach()
        assert teardowns == ["clock"]

    def test_detach_with_success(self, registry):
        teardowns = []
        handle = registry.observe("clock", noop)
        handle.attach(lambda _: lambda: teardowns.append("clock"))

        handle.detach()

        assert teardowns == ["clock"]
        assert "clock" not in registry

    """
    entry
    """

    def test_entry_with_success_return_listener_entry(self, registry):
        handle = registry.observe("clock", noop)
        entry = handle.entry

        assert entry.id == handle.id
        assert entry.callback is noop

    """
    attach_temporarily
    """

    def test_attach_temporarily_with_success(self, registry):
        teardowns = []
        handle = registry.observe("clock", noop)

        with handle.attach_temporarily(lambda _: lambda: teardowns.append("clock")):
            assert handle.is_attached
            assert teardowns == []

        assert not handle.is_attached
        assert teardowns == ["clock"]

    def test_attach_temporarily_with_decorator(self, registry):
        handle = registry.observe("clock", noop)

        @handle.attach_temporarily(noop)
        def some_function():
            assert handle.is_attached

        assert not handle.is_attached
        some_function()
        assert not handle.is_attached

    def test_attach_temporarily_with_exception_detach_handle(self, registry):
        handle = registry.observe("clock", noop)

        with pytest.raises(RuntimeError):
            with handle.attach_temporarily(noop):
                raise RuntimeError

        assert not handle.is_attached
