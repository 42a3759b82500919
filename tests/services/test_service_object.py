"""Tests for service objects."""

import pytest

from polylith.exceptions import ServiceNotStartedError
from polylith.services import BusBinding, DirectBinding, ServiceObject


class TestServiceObjectInitialization:
    """Test the initial state of a service object."""

    def test_defaults(self):
        """Test a fresh named service object."""
        service_object = ServiceObject("storage")

        assert service_object.name == "storage"
        assert service_object.bound is True
        assert service_object.methods == []
        assert service_object.required == []
        assert service_object.prefix == "service:"

    def test_anonymous(self):
        """Service objects may be anonymous."""
        assert ServiceObject().name is None

    def test_unknown_attribute(self):
        """Unassigned method names are regular missing attributes."""
        service_object = ServiceObject("storage")

        with pytest.raises(AttributeError):
            service_object.save  # noqa: B018


class TestMethodBinding:
    """Test assign_method / unbind_method / unbind."""

    def test_assign_method_binds_directly(self):
        """A single implementation is called directly."""
        service_object = ServiceObject("storage")

        def save(doc):
            return f"saved {doc}"

        service_object.assign_method("save", save)

        assert service_object.save is save
        assert service_object.get_binding("save") == DirectBinding(save)
        assert service_object.methods == ["save"]

    def test_assign_method_while_bound_replaces_direct_method(self):
        """While bound, a later assignment wins even if listeners exist."""
        service_object = ServiceObject("storage")
        service_object.implement({"save": lambda: "first"})
        service_object.implement({"save": lambda: "second"})

        assert isinstance(service_object.get_binding("save"), DirectBinding)
        assert service_object.save() == "second"
        assert service_object.methods == ["save", "save"]

    def test_assign_method_after_unbind_with_listener_uses_bus(self):
        """Once unbound, a method with listeners fans out."""
        service_object = ServiceObject("storage")
        service_object.unbind()
        service_object.listen("save", lambda: "listener")

        service_object.assign_method("save", lambda: "direct")

        assert isinstance(service_object.get_binding("save"), BusBinding)
        assert service_object.save() == "listener"

    def test_assign_method_after_unbind_without_listener_binds_directly(self):
        """Once unbound, a method nobody listens to is still bound directly."""
        service_object = ServiceObject("storage")
        service_object.unbind()

        service_object.assign_method("save", lambda: "direct")

        assert isinstance(service_object.get_binding("save"), DirectBinding)
        assert service_object.save() == "direct"

    def test_unbind_method(self):
        """Test routing a single method through the bus."""
        service_object = ServiceObject("storage")
        calls = []
        service_object.implement({"save": lambda doc: calls.append(("impl", doc))})
        service_object.listen("save", lambda doc: calls.append(("audit", doc)))

        service_object.save("a")
        service_object.unbind_method("save")
        service_object.save("b")

        assert calls == [("impl", "a"), ("impl", "b"), ("audit", "b")]
        assert service_object.bound is True

    def test_unbind_routes_every_method_through_bus(self):
        """After unbind every implementation of a method is reached."""
        service_object = ServiceObject("storage")
        calls = []
        service_object.implement({"save": lambda: calls.append("first"), "load": lambda: "loaded"})
        service_object.implement({"save": lambda: calls.append("second")})

        service_object.unbind()
        service_object.save()

        assert service_object.bound is False
        assert calls == ["first", "second"]
        assert service_object.load() == "loaded"
        assert all(isinstance(service_object.get_binding(name), BusBinding) for name in ("save", "load"))

    def test_unbind_is_permanent(self):
        """Later implementations of an existing method fan out as well."""
        service_object = ServiceObject("storage")
        calls = []
        service_object.implement({"save": lambda: calls.append("first")})
        service_object.unbind()

        service_object.implement({"save": lambda: calls.append("second")})
        service_object.save()

        assert calls == ["first", "second"]


class TestImplementAndInvoke:
    """Test implement / invoke."""

    def test_implement_assigns_and_listens(self):
        """Direct call and invoke reach the same implementation."""
        service_object = ServiceObject("storage")

        def save(doc):
            return f"saved {doc}"

        service_object.implement({"save": save})

        assert service_object.save("x") == "saved x"
        assert service_object.invoke("save", "x") == "saved x"
        assert service_object.get_listener_count("save") == 1

    def test_implement_skips_none(self):
        """Missing implementations are ignored."""
        service_object = ServiceObject("storage")

        service_object.implement({"save": None})

        assert service_object.methods == []
        assert not service_object.has_listeners("save")

    def test_invoke_without_implementation(self):
        """Invoking an unknown method returns None."""
        assert ServiceObject("storage").invoke("start") is None

    @pytest.mark.asyncio
    async def test_async_invoke(self):
        """async_invoke awaits asynchronous implementations."""
        service_object = ServiceObject("storage")

        async def load():
            return "loaded"

        service_object.implement({"load": load})

        assert await service_object.async_invoke("load") == "loaded"

    def test_shadowed_method_name_is_reported(self, messages_at):
        """A method named like a service object attribute is only reachable via invoke."""
        service_object = ServiceObject("storage")

        service_object.implement({"name": lambda: "method"})

        assert service_object.name == "storage"
        assert service_object.invoke("name") == "method"
        assert any("shadowed" in message for message in messages_at("WARNING"))


class TestRequire:
    """Test require."""

    def test_require_deduplicates(self):
        """Overlapping requirements are merged."""
        service_object = ServiceObject("app")

        service_object.require(["storage", "config"])
        service_object.require(["config", "network"])
        service_object.require(["storage"])

        assert service_object.required == ["storage", "config", "network"]

    def test_require_single_name(self):
        """A single name is not split into characters."""
        service_object = ServiceObject("app")

        service_object.require("storage")

        assert service_object.required == ["storage"]


class TestWaitStarted:
    """Test wait_started outside of a start cycle."""

    def test_wait_started_before_any_cycle(self):
        """The accessor exists only once a cycle included the service."""
        with pytest.raises(ServiceNotStartedError, match="storage"):
            ServiceObject("storage").wait_started()
