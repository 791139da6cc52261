"""Tests for the filter overlay."""

from systoggle.overlay import rows, visible
from systoggle.registry import Registry


class TestVisible:
    """Tests for visible()."""

    def test_empty_query_shows_every_category(self, registry: Registry) -> None:
        views = visible(registry, "", "system")
        assert [v.label for v in views] == [c.label for c in registry.categories("system")]
        assert sum(v.count for v in views) == len(registry.units("system"))

    def test_case_insensitive_name_match(self, registry: Registry) -> None:
        views = visible(registry, "NETWORK", "system")
        assert [(v.label, v.matches) for v in views] == [("Network", ("NetworkManager.service",))]

    def test_description_is_not_searched(self, registry: Registry) -> None:
        # sshd's curated description mentions OpenSSH; its name does not
        assert visible(registry, "openssh", "system") == []

    def test_empty_categories_omitted(self, registry: Registry) -> None:
        views = visible(registry, "sup", "system")
        assert [v.label for v in views] == ["Network"]

    def test_scope_is_respected(self, registry: Registry) -> None:
        views = visible(registry, "", "user")
        names = {n for v in views for n in v.matches}
        assert names == {"syncthing.service", "pipewire.service", "wireplumber.service"}

    def test_without_scope_covers_every_scope(self, registry: Registry) -> None:
        views = visible(registry, "syncthing")
        assert [(v.scope, v.label, v.matches) for v in views] == [
            ("user", "Other", ("syncthing.service",)),
        ]

    def test_none_scope_lists_system_then_user(self, registry: Registry) -> None:
        views = visible(registry, "", None)
        assert views == visible(registry, "", "system") + visible(registry, "", "user")
        assert sum(v.count for v in views) == len(registry)

    def test_query_is_not_trimmed(self, registry: Registry) -> None:
        assert visible(registry, " sshd", "system") == []
        assert [v.matches for v in visible(registry, "sshd", "system")] == [("sshd.service",)]

    def test_collapsed_keeps_count_hides_rows(self, registry: Registry) -> None:
        registry.set_collapsed("Network", True)
        views = visible(registry, "service", "system")
        network = next(v for v in views if v.label == "Network")
        assert network.count == 2
        assert network.shown == ()

    def test_filter_then_clear_reproduces_view(self, registry: Registry) -> None:
        registry.set_collapsed("Security", True)
        registry.toggle("bluetooth.service", "system")
        before = visible(registry, "", "system")
        collapsed_before = set(registry.collapsed)
        desired_before = [(u.key, u.desired_state) for u in registry]

        visible(registry, "blue", "system")
        visible(registry, "zzz", "system")

        assert visible(registry, "", "system") == before
        assert registry.collapsed == collapsed_before
        assert [(u.key, u.desired_state) for u in registry] == desired_before


class TestRows:
    """Tests for rows()."""

    def test_headers_then_members(self, registry: Registry) -> None:
        out = rows(visible(registry, "net", "system"))
        assert [(r.kind, r.name) for r in out] == [
            ("category", None),
            ("unit", "NetworkManager.service"),
        ]

    def test_collapsed_category_has_header_only(self, registry: Registry) -> None:
        registry.set_collapsed("Network", True)
        out = rows(visible(registry, "", "system"))
        network = [r for r in out if r.label == "Network"]
        assert [r.kind for r in network] == ["category"]
