import pytest

from registry_admin.utils.git_providers import allowed_hosts, find_provider, parse_repository_url
from registry_admin.utils.url_helpers import (
    normalize_repository_url,
    parse_cluster_service_url,
)


class TestRepositoryUrl:
    def test_github_repository(self):
        ref = parse_repository_url("https://github.com/acme/tools.git")

        assert ref.provider.name == "github"
        assert ref.owner == "acme"
        assert ref.repo == "tools"
        assert ref.raw_url("main", "registry.json") == (
            "https://raw.githubusercontent.com/acme/tools/main/registry.json"
        )

    def test_gitlab_nested_groups(self):
        ref = parse_repository_url("https://gitlab.com/org/team/tools")

        assert ref.owner == "org/team"
        assert ref.repo == "tools"
        assert ref.raw_url("dev", "/data/registry.yaml") == (
            "https://gitlab.com/org/team/tools/-/raw/dev/data/registry.yaml"
        )

    def test_bitbucket_raw_url(self):
        ref = parse_repository_url("https://bitbucket.org/acme/tools")

        assert ref.raw_url("main", "r.json") == "https://bitbucket.org/acme/tools/raw/main/r.json"

    def test_subdomain_of_known_host(self):
        assert parse_repository_url("https://www.github.com/acme/tools") is not None

    @pytest.mark.parametrize("url", [
        None,
        "",
        "http://github.com/acme/tools",
        "https://github.com/acme",
        "https://notgithub.com/acme/tools",
        "https://github.com/acme/.git",
    ])
    def test_rejected_urls(self, url):
        assert parse_repository_url(url) is None

    def test_allow_list_is_the_provider_table(self):
        assert allowed_hosts() == ["github.com", "gitlab.com", "bitbucket.org"]
        assert find_provider(None) is None
        assert find_provider("GitLab.com").name == "gitlab"


class TestUrlHelpers:
    def test_normalize_repository_url(self):
        assert normalize_repository_url("HTTPS://GitHub.com/User/Repo/") == "https://github.com/User/Repo"
        assert normalize_repository_url("https://github.com/a/b?tab=readme#top") == "https://github.com/a/b"
        assert normalize_repository_url("not a url") == "not a url"

    def test_cluster_service_url_with_port(self):
        ref = parse_cluster_service_url("http://reg.ns.svc.cluster.local:8080")

        assert (ref.service, ref.namespace, ref.port) == ("reg", "ns", "8080")

    def test_cluster_service_url_without_port(self):
        ref = parse_cluster_service_url("https://reg-api.toolhive-system.svc.cluster.local/v0")

        assert ref.service == "reg-api"
        assert ref.namespace == "toolhive-system"
        assert ref.port is None

    @pytest.mark.parametrize("url", [None, "", "https://registry.example.com", "http://reg.svc.cluster.local"])
    def test_not_a_cluster_service(self, url):
        assert parse_cluster_service_url(url) is None
