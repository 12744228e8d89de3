"""
Tests for the deployment lifecycle.
"""

import logging
import warnings
from pathlib import Path
from unittest.mock import patch

import pytest

from webunpack.context import DeploymentContext, ExtractionPolicy
from webunpack.errors import DeployNotFound
from webunpack.lifecycle import DeploymentLifecycle, LifecycleState, is_protected_work_dir
from webunpack.naming import NamingStrategy
from webunpack.resource import ArchiveResource, PathResource, ResourceCollection
from webunpack.workdir import WorkDirectoryResolver


@pytest.fixture
def scratch(tmp_path):
    d = tmp_path / "scratch"
    d.mkdir()
    return d


def make_context(war, scratch, **policy):
    context = DeploymentContext(war=str(war), context_path="/shop", policy=ExtractionPolicy(**policy))
    context.attributes.base_temp_dir = scratch
    return context


def make_lifecycle(tmp_path, strategy=NamingStrategy.CLASSIC):
    # No {host}/work under host_root, so base_temp_dir decides
    host_root = tmp_path / "host"
    host_root.mkdir(exist_ok=True)
    return DeploymentLifecycle(strategy, WorkDirectoryResolver(host_root))


class TestIsProtectedWorkDir:
    """Test the teardown protection rule."""

    def test_named_work(self):
        assert is_protected_work_dir(Path("/srv/work"))
        assert is_protected_work_dir(Path("/srv/WORK"))

    def test_child_of_work(self):
        assert is_protected_work_dir(Path("/srv/Work/jetty-x"))

    def test_grandchild_is_not_protected(self):
        assert not is_protected_work_dir(Path("/srv/work/jetty-x/webapp"))

    def test_other(self):
        assert not is_protected_work_dir(Path("/tmp/jetty-x"))
        assert not is_protected_work_dir(None)


class TestPreconfigure:
    """Test temp directory creation and unpacking."""

    def test_creates_temp_dir_and_extracts(self, tmp_path, scratch, war_factory):
        war = war_factory()
        context = make_context(war, scratch)
        lifecycle = make_lifecycle(tmp_path)

        lifecycle.preconfigure(context)
        expected = scratch / "jetty-0.0.0.0-0-myapp.war-_shop-any-"
        assert context.temp_directory == expected
        assert (expected / "webapp" / "index.html").exists()
        assert context.attributes.temp_dir_configured is False
        assert lifecycle.state(context) is LifecycleState.PRECONFIGURED

    def test_discovers_web_inf_jars(self, tmp_path, scratch, war_factory):
        war = war_factory()
        context = make_context(war, scratch)
        make_lifecycle(tmp_path).preconfigure(context)

        assert [j.name for j in context.web_inf_jars] == ["util.jar"]

    def test_temp_dir_stays_fixed(self, tmp_path, scratch, war_factory):
        war = war_factory()
        context = make_context(war, scratch)
        lifecycle = make_lifecycle(tmp_path, NamingStrategy.RANDOM)

        lifecycle.preconfigure(context)
        first = context.temp_directory
        lifecycle.preconfigure(context)
        assert context.temp_directory == first

    def test_missing_artifact_is_fatal(self, tmp_path, scratch):
        context = make_context(tmp_path / "missing.war", scratch)
        with pytest.raises(DeployNotFound):
            make_lifecycle(tmp_path).preconfigure(context)

    def test_uncreatable_temp_dir_warns(self, tmp_path, scratch, war_factory, caplog):
        context = make_context(war_factory(), scratch)
        lifecycle = make_lifecycle(tmp_path)
        with patch("pathlib.Path.mkdir", side_effect=OSError("denied")):
            with caplog.at_level(logging.WARNING, logger="webunpack.lifecycle"):
                directory = lifecycle.make_temp_directory(context)
        assert "Unable to create temp directory" in caplog.text
        assert directory == context.temp_directory
        assert not directory.exists()

    def test_uncreatable_temp_dir_with_warnings_as_errors(self, tmp_path, scratch, war_factory):
        """Running with -W error must not turn the warning into a failure."""
        context = make_context(war_factory(), scratch)
        lifecycle = make_lifecycle(tmp_path)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            with patch("pathlib.Path.mkdir", side_effect=OSError("denied")):
                directory = lifecycle.make_temp_directory(context)
        assert directory == context.temp_directory


class TestConfigure:
    """Test classpath wiring and resource composition."""

    def test_wires_classes_and_lib(self, tmp_path, scratch, war_factory):
        context = make_context(war_factory(), scratch)
        lifecycle = make_lifecycle(tmp_path)
        lifecycle.preconfigure(context)
        lifecycle.configure(context)

        web_inf = (context.temp_directory / "webapp" / "WEB-INF").resolve()
        assert [r.local_path for r in context.classpath] == [web_inf / "classes", web_inf / "lib" / "util.jar"]
        assert lifecycle.state(context) is LifecycleState.CONFIGURED

    def test_archive_view_keeps_classpath(self, tmp_path, scratch, war_factory):
        """Without extraction, WEB-INF entries inside the archive still reach the classpath."""
        war = war_factory()
        context = make_context(war, scratch, extract_archive=False)
        lifecycle = make_lifecycle(tmp_path)
        lifecycle.preconfigure(context)
        lifecycle.configure(context)

        assert all(isinstance(r, ArchiveResource) for r in context.classpath)
        assert [r.uri for r in context.classpath] == [
            f"jar:{war.absolute().as_uri()}!/WEB-INF/classes",
            f"jar:{war.absolute().as_uri()}!/WEB-INF/lib/util.jar",
        ]

    def test_skipped_when_started(self, tmp_path, scratch, war_factory):
        context = make_context(war_factory(), scratch)
        lifecycle = make_lifecycle(tmp_path)
        lifecycle.preconfigure(context)
        context.started = True
        lifecycle.configure(context)

        assert context.classpath == []
        assert lifecycle.state(context) is LifecycleState.PRECONFIGURED

    def test_composes_extra_resources(self, tmp_path, scratch, war_factory):
        extra_dir = tmp_path / "overlay"
        extra_dir.mkdir()
        (extra_dir / "extra.css").write_text("body{}")
        context = make_context(war_factory(), scratch)
        context.attributes.extra_resources = [PathResource(extra_dir)]
        lifecycle = make_lifecycle(tmp_path)
        lifecycle.preconfigure(context)
        base = context.base_resource
        lifecycle.configure(context)

        assert isinstance(context.base_resource, ResourceCollection)
        assert context.base_resource.resources == [base, PathResource(extra_dir)]
        assert context.base_resource.add_path("extra.css").exists()

    def test_second_configure_is_noop(self, tmp_path, scratch, war_factory):
        extra_dir = tmp_path / "overlay"
        extra_dir.mkdir()
        context = make_context(war_factory(), scratch)
        context.attributes.extra_resources = [PathResource(extra_dir)]
        lifecycle = make_lifecycle(tmp_path)
        lifecycle.preconfigure(context)
        lifecycle.configure(context)
        composed = context.base_resource
        lifecycle.configure(context)

        assert context.base_resource is composed


class TestDeconfigure:
    """Test teardown and its protection rules."""

    def test_deletes_owned_temp_dir(self, tmp_path, scratch, war_factory):
        context = make_context(war_factory(), scratch)
        lifecycle = make_lifecycle(tmp_path)
        lifecycle.preconfigure(context)
        temp_dir = context.temp_directory

        lifecycle.deconfigure(context)
        assert not temp_dir.exists()
        assert context.temp_directory is None
        assert context.attributes.temp_dir is None
        assert context.attributes.temp_dir_configured is None
        assert context.base_resource is None
        assert lifecycle.state(context) is LifecycleState.DECONFIGURED

    def test_keeps_user_supplied_temp_dir(self, tmp_path, scratch, war_factory):
        mine = tmp_path / "mine"
        mine.mkdir()
        context = make_context(war_factory(), scratch)
        context.temp_directory = mine
        lifecycle = make_lifecycle(tmp_path)
        lifecycle.preconfigure(context)

        lifecycle.deconfigure(context)
        assert mine.exists()
        assert context.temp_directory == mine
        assert context.attributes.temp_dir_configured is True

    def test_never_deletes_child_of_work(self, tmp_path, war_factory):
        host = tmp_path / "host"
        (host / "work").mkdir(parents=True)
        context = DeploymentContext(war=str(war_factory()))
        lifecycle = DeploymentLifecycle(resolver=WorkDirectoryResolver(host))
        lifecycle.preconfigure(context)
        temp_dir = context.temp_directory
        assert temp_dir.parent == host / "work"
        assert context.attributes.temp_dir_configured is False

        lifecycle.deconfigure(context)
        assert temp_dir.exists()
        assert context.temp_directory == temp_dir
        assert context.attributes.temp_dir == temp_dir

    def test_never_deletes_dir_named_work(self, tmp_path):
        work = tmp_path / "Work"
        work.mkdir()
        context = DeploymentContext(temp_directory=work)
        context.attributes.temp_dir_configured = False

        DeploymentLifecycle().deconfigure(context)
        assert work.exists()

    def test_restores_pre_unpack_resource(self, tmp_path, scratch, war_factory):
        original = PathResource(war_factory().parent)
        context = make_context(war_factory(), scratch, copy_web_inf=True)
        context.base_resource = original
        lifecycle = make_lifecycle(tmp_path)
        lifecycle.preconfigure(context)

        lifecycle.deconfigure(context)
        assert context.base_resource is original

    def test_preconfigure_after_deconfigure(self, tmp_path, scratch, war_factory):
        context = make_context(war_factory(), scratch)
        lifecycle = make_lifecycle(tmp_path)
        lifecycle.preconfigure(context)
        lifecycle.deconfigure(context)
        lifecycle.preconfigure(context)

        assert (context.temp_directory / "webapp" / "index.html").exists()


class TestState:
    """Test that lifecycle state belongs to each context."""

    def test_fresh_context_starts_unconfigured(self, tmp_path, scratch, war_factory):
        lifecycle = make_lifecycle(tmp_path)
        for _ in range(5):
            context = make_context(war_factory(), scratch)
            lifecycle.preconfigure(context)
            lifecycle.configure(context)
            lifecycle.deconfigure(context)
            assert lifecycle.state(context) is LifecycleState.DECONFIGURED
            del context

        fresh = DeploymentContext()
        assert fresh.state is LifecycleState.UNCONFIGURED
        assert lifecycle.state(fresh) is LifecycleState.UNCONFIGURED
        lifecycle.configure(fresh)
        assert lifecycle.state(fresh) is LifecycleState.CONFIGURED

    def test_contexts_do_not_share_state(self, tmp_path, scratch, war_factory):
        lifecycle = make_lifecycle(tmp_path)
        first = make_context(war_factory(), scratch)
        second = DeploymentContext()
        lifecycle.preconfigure(first)
        lifecycle.configure(first)

        assert lifecycle.state(first) is LifecycleState.CONFIGURED
        assert lifecycle.state(second) is LifecycleState.UNCONFIGURED


class TestClone:
    """Test temp directory allocation for cloned contexts."""

    def test_allocates_sibling(self, tmp_path, scratch, war_factory):
        template = make_context(war_factory(), scratch)
        lifecycle = make_lifecycle(tmp_path)
        lifecycle.preconfigure(template)
        clone = make_context(war_factory(), scratch)
        clone.temp_directory = template.temp_directory

        new_dir = lifecycle.clone_configure(template, clone)
        assert new_dir.exists()
        assert new_dir.parent == template.temp_directory.parent
        assert new_dir.name.startswith(template.temp_directory.name + "-")
        assert clone.temp_directory == new_dir
        assert new_dir != template.temp_directory

    def test_mkdir_failure_is_not_fatal(self, tmp_path, caplog):
        template = DeploymentContext(temp_directory=tmp_path / "jetty-x")
        clone = DeploymentContext()
        with patch("pathlib.Path.mkdir", side_effect=OSError("denied")):
            with caplog.at_level(logging.WARNING, logger="webunpack.lifecycle"):
                new_dir = DeploymentLifecycle().clone_configure(template, clone)
        assert "Unable to create cloned Temp Directory" in caplog.text
        assert clone.temp_directory == new_dir


def test_revalidation_keeps_ownership(tmp_path, scratch, war_factory):
    context = make_context(war_factory(), scratch)
    lifecycle = make_lifecycle(tmp_path)
    lifecycle.preconfigure(context)
    lifecycle.preconfigure(context)
    temp_dir = context.temp_directory

    assert context.attributes.temp_dir_configured is False
    lifecycle.deconfigure(context)
    assert not temp_dir.exists()
