"""
Tests for the GraphQL schema.

Tests cover:
- Root fields and exact result shapes
- Fragments and @skip/@include feeding the engine selection
- Scoped failures surfacing as null fields
- Entry failures surfacing as GraphQL errors
- Dedup across root fields of one operation
"""

import pytest

from mfegraph.app.schema import schema
from mfegraph.engine import ResolutionContext

from conftest import APP_SHELL_LIVE, APP_SHELL_TEST, NAVIGATION_LIVE, REGISTRY_URL


async def execute(engine, query, variables=None):
    context = ResolutionContext()
    try:
        return await schema.execute(
            query,
            variable_values=variables,
            context_value={"engine": engine, "resolution": context},
        )
    finally:
        await context.close()


class TestRootFields:
    """Tests for mfes and mfe."""

    @pytest.mark.asyncio
    async def test_mfes(self, engine, upstream):
        result = await execute(engine, "{ mfes { key name type } }")

        assert result.errors is None
        assert result.data == {
            "mfes": [
                {"key": "app-shell", "name": "App Shell", "type": "MFE_APP"},
                {"key": "navigation", "name": "Navigation", "type": "MFE_APP"},
                {"key": "dashboard", "name": "Dashboard", "type": "MFE_APP"},
            ]
        }
        assert upstream.requests == [REGISTRY_URL]

    @pytest.mark.asyncio
    async def test_mfe_by_key(self, engine):
        query = """
            {
              mfe(key: "app-shell") {
                key
                environments {
                  live { href builds { name metadata { id source } } }
                  staging { href }
                }
              }
            }
        """

        result = await execute(engine, query)

        assert result.errors is None
        assert result.data == {
            "mfe": {
                "key": "app-shell",
                "environments": {
                    "live": {
                        "href": APP_SHELL_LIVE,
                        "builds": [
                            {"name": "release", "metadata": {"id": "101", "source": "release"}},
                            {"name": "feature-login", "metadata": {"id": "102", "source": "feature/login"}},
                        ],
                    },
                    "staging": None,
                },
            }
        }

    @pytest.mark.asyncio
    async def test_unknown_key_is_null(self, engine):
        result = await execute(engine, '{ mfe(key: "analytics") { key } }')

        assert result.errors is None
        assert result.data == {"mfe": None}

    @pytest.mark.asyncio
    async def test_typename(self, engine):
        result = await execute(engine, '{ mfe(key: "navigation") { __typename key } }')

        assert result.errors is None
        assert result.data == {"mfe": {"__typename": "Mfe", "key": "navigation"}}

    @pytest.mark.asyncio
    async def test_cyclic_dependencies(self, engine):
        query = '{ mfe(key: "app-shell") { dependencies { key dependencies { key } } } }'

        result = await execute(engine, query)

        assert result.errors is None
        assert result.data["mfe"]["dependencies"] == [
            {"key": "app-shell", "dependencies": None},
            {"key": "navigation", "dependencies": [{"key": "app-shell"}]},
        ]

    @pytest.mark.asyncio
    async def test_build_href_is_not_queryable(self, engine, upstream):
        result = await execute(engine, '{ mfes { environments { live { builds { href } } } } }')

        assert result.errors
        assert upstream.count() == 0


class TestSelectionConversion:
    """The engine sees exactly what the operation selects."""

    @pytest.mark.asyncio
    async def test_fragments_are_flattened(self, engine):
        query = """
            query {
              mfe(key: "app-shell") {
                ...Identity
                environments {
                  ... on Environments { test { href } }
                }
              }
            }

            fragment Identity on Mfe { key name }
        """

        result = await execute(engine, query)

        assert result.errors is None
        assert result.data == {
            "mfe": {
                "key": "app-shell",
                "name": "App Shell",
                "environments": {"test": {"href": APP_SHELL_TEST}},
            }
        }

    @pytest.mark.asyncio
    async def test_skipped_builds_are_not_fetched(self, engine, upstream):
        query = """
            query ($withBuilds: Boolean!) {
              mfe(key: "navigation") {
                environments { live { href builds @include(if: $withBuilds) { name } } }
              }
            }
        """

        result = await execute(engine, query, {"withBuilds": False})

        assert result.errors is None
        assert result.data == {"mfe": {"environments": {"live": {"href": NAVIGATION_LIVE}}}}
        assert upstream.requests == [REGISTRY_URL]

    @pytest.mark.asyncio
    async def test_skip_directive(self, engine, upstream):
        query = '{ mfe(key: "navigation") { key environments @skip(if: true) { live { builds { name } } } } }'

        result = await execute(engine, query)

        assert result.data == {"mfe": {"key": "navigation"}}
        assert upstream.requests == [REGISTRY_URL]

    @pytest.mark.asyncio
    async def test_aliases_share_one_fetch(self, engine, upstream):
        query = """
            {
              shell: mfe(key: "app-shell") { name }
              nav: mfe(key: "navigation") { name }
              all: mfes { key }
            }
        """

        result = await execute(engine, query)

        assert result.errors is None
        assert result.data["shell"] == {"name": "App Shell"}
        assert result.data["nav"] == {"name": "Navigation"}
        assert len(result.data["all"]) == 3
        assert upstream.count(REGISTRY_URL) == 1


class TestFailures:
    """Failures as seen through GraphQL."""

    @pytest.mark.asyncio
    async def test_scoped_failure_is_null_without_error(self, engine, upstream):
        upstream.fail(f"{APP_SHELL_TEST}ep.builds.config.json", 500)
        query = '{ mfe(key: "app-shell") { environments { live { builds { name } } test { builds { name } } } } }'

        result = await execute(engine, query)

        assert result.errors is None
        environments = result.data["mfe"]["environments"]
        assert environments["test"] == {"builds": None}
        assert environments["live"]["builds"] == [{"name": "release"}, {"name": "feature-login"}]

    @pytest.mark.asyncio
    async def test_entry_failure_is_an_error(self, engine, upstream):
        upstream.fail(REGISTRY_URL, 503)

        result = await execute(engine, '{ mfe(key: "app-shell") { key } }')

        assert result.data == {"mfe": None}
        assert len(result.errors) == 1
        assert "Could not resolve app" in result.errors[0].message
