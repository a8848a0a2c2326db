"""
Path Resolver Tests

Identifier grammar, container creation, attachments, URI mapping.

AXIOM UNDER TEST:
=================
Creating a path never overwrites live data and always emits `create`.
"""

import pytest
from types import SimpleNamespace
from hypothesis import given, strategies as st

from nsregistry import (
    NamespaceRegistry,
    RegistryConfig,
    InvalidIdentifierError,
    InvalidAttachmentError,
    NamespaceError,
    ErrorCode,
    split_identifier,
)

from .fixtures import EventRecorder


segment = st.from_regex(r"[a-z][a-z0-9_]{0,6}", fullmatch=True)
identifiers = st.lists(segment, min_size=1, max_size=4).map(".".join)


# =============================================================================
# IDENTIFIER GRAMMAR
# =============================================================================

class TestIdentifierGrammar:

    def test_root_has_no_segments(self):
        assert split_identifier("", ".") == []

    def test_segments_split_on_separator(self):
        assert split_identifier("app.util.slugify", ".") == ["app", "util", "slugify"]

    def test_custom_separator(self):
        assert split_identifier("app/util", "/") == ["app", "util"]

    def test_trailing_wildcard_allowed(self):
        assert split_identifier("app.util.*", ".") == ["app", "util", "*"]

    @pytest.mark.parametrize("identifier", ["a..b", ".a", "a.", "a.*.b"])
    def test_malformed_identifiers_rejected(self, identifier):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            split_identifier(identifier, ".")
        assert exc_info.value.code == ErrorCode.INVALID_IDENTIFIER
        assert isinstance(exc_info.value, ValueError)

    @pytest.mark.parametrize("separator", ["", "::", "*"])
    def test_separator_changed_at_runtime_is_checked(self, separator):
        registry = NamespaceRegistry()
        registry.config.separator = separator

        with pytest.raises(InvalidIdentifierError) as exc_info:
            registry.namespace("app.util")

        assert exc_info.value.error.context_value('separator') == separator
        assert not hasattr(registry.scope, "app")


# =============================================================================
# CREATION
# =============================================================================

class TestNamespaceCreation:

    def test_creates_intermediate_containers(self):
        registry = NamespaceRegistry()
        leaf = registry.namespace("app.util.text")

        assert isinstance(registry.scope.app, SimpleNamespace)
        assert isinstance(registry.scope.app.util, SimpleNamespace)
        assert registry.scope.app.util.text is leaf

    def test_existing_path_returned_unchanged(self):
        registry = NamespaceRegistry()
        first = registry.namespace("app.util")
        first.marker = "live"

        second = registry.namespace("app.util", {"marker": "replacement"})

        assert second is first
        assert second.marker == "live"

    def test_create_fires_on_hit_and_miss(self):
        registry = NamespaceRegistry()
        recorder = EventRecorder()
        registry.add_event_listener("create", recorder)

        registry.namespace("app.util")
        registry.namespace("app.util")

        assert recorder.names == ["create", "create"]
        assert recorder.identifiers == ["app.util", "app.util"]

    def test_callable_attachment_becomes_leaf(self):
        registry = NamespaceRegistry()

        class Captcha:
            pass

        leaf = registry.namespace("app.Captcha", Captcha)

        assert leaf is Captcha
        assert registry.scope.app.Captcha is Captcha

    def test_mapping_attachment_merged_into_leaf(self):
        registry = NamespaceRegistry()
        leaf = registry.namespace("app.util", {"trim": str.strip, "limit": 10})

        assert leaf.trim is str.strip
        assert leaf.limit == 10
        assert registry.exist("app.util.limit")

    def test_mapping_attachment_on_root_merges_into_scope(self):
        registry = NamespaceRegistry()
        registry.namespace("", {"answer": 42})
        assert registry.scope.answer == 42

    def test_invalid_attachment_rejected_before_mutation(self):
        registry = NamespaceRegistry()
        with pytest.raises(InvalidAttachmentError):
            registry.namespace("app.util", 42)
        assert not registry.exist("app")

    def test_non_container_intermediate_is_a_conflict(self):
        registry = NamespaceRegistry()
        registry.namespace("app", {"version": 3})

        with pytest.raises(NamespaceError) as exc_info:
            registry.namespace("app.version.major")

        assert exc_info.value.code == ErrorCode.PATH_CONFLICT
        assert registry.scope.app.version == 3

    def test_dict_nodes_are_traversed(self):
        registry = NamespaceRegistry()
        registry.scope.settings = {"theme": {}}

        leaf = registry.namespace("settings.theme.dark")

        assert registry.scope.settings["theme"]["dark"] is leaf

    def test_registry_is_callable(self):
        registry = NamespaceRegistry()
        assert registry("app.util") is registry.namespace("app.util")

    @given(identifiers)
    def test_creation_is_idempotent(self, identifier):
        registry = NamespaceRegistry()
        recorder = EventRecorder()
        registry.add_event_listener("create", recorder)

        first = registry.namespace(identifier)
        second = registry.namespace(identifier)

        assert first is second
        assert recorder.names.count("create") == 2


# =============================================================================
# EXISTENCE
# =============================================================================

class TestExist:

    def test_root_always_exists(self):
        assert NamespaceRegistry().exist("")

    def test_missing_path(self):
        registry = NamespaceRegistry()
        registry.namespace("app")
        assert not registry.exist("app.util")

    @pytest.mark.parametrize("value", [0, None, "", False, []])
    def test_falsy_values_exist(self, value):
        registry = NamespaceRegistry()
        registry.namespace("app", {"flag": value})
        assert registry.exist("app.flag")

    def test_inherited_attributes_do_not_count(self):
        registry = NamespaceRegistry()

        class Base:
            shared = 1

        class Child(Base):
            pass

        registry.namespace("app.Child", Child)

        assert not registry.exist("app.Child.shared")


# =============================================================================
# URI MAPPING
# =============================================================================

class TestUriMapping:

    def test_default_policy(self):
        registry = NamespaceRegistry()
        assert registry.map_identifier_to_uri("app.util.slugify") == "./app/util/slugify.py"

    def test_config_is_read_at_call_time(self):
        registry = NamespaceRegistry()
        registry.config.base_uri = "https://cdn.example.org/units/"
        registry.config.separator = ":"

        assert registry.map_identifier_to_uri("app:util") == "https://cdn.example.org/units/app/util.py"

    def test_custom_mapper(self):
        config = RegistryConfig(uri_mapper=lambda identifier: f"mem://{identifier}")
        registry = NamespaceRegistry(config=config)
        assert registry.map_identifier_to_uri("app.util") == "mem://app.util"

    def test_subclass_override(self):
        class VersionedRegistry(NamespaceRegistry):
            def map_identifier_to_uri(self, identifier):
                return super().map_identifier_to_uri(identifier) + "?v=2"

        assert VersionedRegistry().map_identifier_to_uri("a.b") == "./a/b.py?v=2"
