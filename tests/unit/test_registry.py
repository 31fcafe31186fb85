"""Tests for the build-system registry — exact-match dispatch."""

from __future__ import annotations

import pytest

from unibuild.errors import ConfigurationError
from unibuild.systems import BuildSystem
from unibuild.systems.assemble import AssembleBuildSystem
from unibuild.systems.nil import NilBuildSystem
from unibuild.systems.registry import BuildSystemRegistry, default_registry, for_name


class TestForName:
    def test_exact_match(self):
        nil = NilBuildSystem()
        assert for_name("nil", [nil, AssembleBuildSystem()]) is nil

    def test_no_prefix_or_case_matching(self):
        with pytest.raises(ConfigurationError):
            for_name("Nil", [NilBuildSystem()])
        with pytest.raises(ConfigurationError):
            for_name("ni", [NilBuildSystem()])

    def test_message_lists_registered(self):
        with pytest.raises(ConfigurationError, match="registered: assemble, nil"):
            for_name("sbt", [NilBuildSystem(), AssembleBuildSystem()])


class TestBuildSystemRegistry:
    def test_default_registry(self):
        registry = default_registry()
        assert registry.names == ["assemble", "nil"]
        assert len(registry) == 2
        assert isinstance(registry.for_name("assemble"), AssembleBuildSystem)

    def test_duplicate_rejected(self):
        registry = BuildSystemRegistry([NilBuildSystem()])
        with pytest.raises(ConfigurationError, match="already registered"):
            registry.register(NilBuildSystem())

    def test_systems_satisfy_protocol(self):
        for system in default_registry():
            assert isinstance(system, BuildSystem)
