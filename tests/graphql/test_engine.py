"""
Tests for GraphQL resolution through the ResolutionEngine.
"""

import uuid

import pytest

from feedgraph.graphql.engine import RequestState, ResolutionEngine
from feedgraph.registry import MEMBER_TYPE, POST, PROFILE, SUBSCRIPTION, USER


def error_codes(outcome) -> list[str]:
    return [error.extensions.get("code") for error in outcome.errors]


@pytest.mark.asyncio
class TestBatching:
    async def test_one_fetch_per_edge_per_level(self, engine, recorder, sample_data):
        outcome = await engine.execute(
            """
            {
              users {
                name
                posts { title author { name } }
                profile { memberType { id } }
              }
            }
            """
        )

        assert outcome.errors == []
        assert len(outcome.data["users"]) == 3
        assert recorder.count("find_many", USER) == 2  # root scan + post.author
        assert recorder.count("find_many", POST) == 1
        assert recorder.count("find_many", PROFILE) == 1
        assert recorder.count("find_many", MEMBER_TYPE) == 1
        assert outcome.max_level == 2
        assert outcome.batches["post.author"].batches == 1

    async def test_to_many_without_rows_is_empty_list(self, engine, sample_data):
        outcome = await engine.execute(
            "query ($id: UUID!) { user(id: $id) { posts { id } userSubscribedTo { id } } }",
            {"id": str(sample_data["carol"]["id"])},
        )

        assert outcome.data == {"user": {"posts": [], "userSubscribedTo": []}}

    async def test_user_scenario(self, engine, recorder, seeded_gateway, sample_data):
        await seeded_gateway.update(MEMBER_TYPE, "BUSINESS", {"discount": 10.0})

        outcome = await engine.execute(
            """
            query ($id: UUID!) {
              user(id: $id) { posts { title } profile { memberType { discount } } }
            }
            """,
            {"id": str(sample_data["alice"]["id"])},
        )

        user = outcome.data["user"]
        assert len(user["posts"]) == 2
        assert user["profile"]["memberType"]["discount"] == 10.0
        assert recorder.count("find_many", POST) == 1
        assert recorder.count("find_many", PROFILE) == 1
        assert recorder.count("find_many", MEMBER_TYPE) == 1

    async def test_subscription_graph_both_directions(self, engine, sample_data):
        outcome = await engine.execute(
            """
            {
              users {
                name
                userSubscribedTo { name }
                subscribedToUser { name }
              }
            }
            """
        )

        by_name = {user["name"]: user for user in outcome.data["users"]}
        assert by_name["bob"]["userSubscribedTo"] == [{"name": "alice"}]
        assert by_name["alice"]["subscribedToUser"] == [{"name": "bob"}]
        assert by_name["carol"]["userSubscribedTo"] == []

    async def test_member_type_profiles(self, engine, sample_data):
        outcome = await engine.execute(
            "{ memberTypes { id postsLimitPerMonth profiles { user { name } } } }"
        )

        by_id = {mt["id"]: mt for mt in outcome.data["memberTypes"]}
        assert by_id["BASIC"] == {"id": "BASIC", "postsLimitPerMonth": 20, "profiles": []}
        assert by_id["BUSINESS"]["profiles"] == [{"user": {"name": "alice"}}]


@pytest.mark.asyncio
class TestNullPropagation:
    async def test_missing_nullable_to_one_is_null(self, engine, sample_data):
        outcome = await engine.execute(
            "query ($id: UUID!) { user(id: $id) { name profile { id } } }",
            {"id": str(sample_data["bob"]["id"])},
        )

        assert outcome.errors == []
        assert outcome.data == {"user": {"name": "bob", "profile": None}}

    async def test_missing_root_lookup_is_null(self, engine):
        outcome = await engine.execute(
            "query ($id: UUID!) { post(id: $id) { id } }", {"id": str(uuid.uuid4())}
        )

        assert outcome.errors == []
        assert outcome.data == {"post": None}
        assert outcome.state is RequestState.RESPONDED

    async def test_missing_required_to_one_bubbles_to_nullable_parent(
        self, engine, seeded_gateway, sample_data
    ):
        # Remove the author behind the gateway's back, leaving the post orphaned
        del seeded_gateway._tables[USER][sample_data["bob"]["id"]]

        outcome = await engine.execute(
            "query ($id: UUID!) { post(id: $id) { title author { name } } }",
            {"id": str(sample_data["bob_post"]["id"])},
        )

        assert outcome.data == {"post": None}
        assert error_codes(outcome) == ["NOT_FOUND"]
        assert outcome.errors[0].path == ["post", "author"]
        assert outcome.state is RequestState.RESPONDED

    async def test_bubbling_to_root_fails_request(self, engine, seeded_gateway, sample_data):
        del seeded_gateway._tables[USER][sample_data["bob"]["id"]]

        outcome = await engine.execute("{ posts { author { name } } }")

        assert outcome.data is None
        assert "NOT_FOUND" in error_codes(outcome)
        assert outcome.state is RequestState.FAILED


@pytest.mark.asyncio
class TestInputValidation:
    async def test_unknown_member_type_fails_before_fetch(self, engine, recorder):
        outcome = await engine.execute('{ memberType(id: BOGUS) { id } }')

        assert outcome.data is None
        assert error_codes(outcome) == ["BAD_USER_INPUT"]
        assert recorder.calls == []
        assert outcome.state is RequestState.FAILED
        assert outcome.history == [RequestState.RECEIVED, RequestState.PARSED, RequestState.FAILED]

    async def test_unknown_member_type_variable(self, engine, recorder):
        outcome = await engine.execute(
            "query ($id: MemberTypeId!) { memberType(id: $id) { id } }", {"id": "BOGUS"}
        )

        assert outcome.data is None
        assert error_codes(outcome) == ["BAD_USER_INPUT"]
        assert recorder.calls == []
        assert outcome.state is RequestState.FAILED

    async def test_unknown_field_fails_validation(self, engine, recorder):
        outcome = await engine.execute("{ users { nickname } }")

        assert outcome.data is None
        assert error_codes(outcome) == ["BAD_USER_INPUT"]
        assert recorder.calls == []
        assert outcome.history == [RequestState.RECEIVED, RequestState.PARSED, RequestState.FAILED]

    @pytest.mark.parametrize(
        "value",
        [
            "not-a-uuid",
            "{12345678-1234-1234-1234-123456789abc}",
            "12345678123412341234123456789abc",
            "urn:uuid:12345678-1234-1234-1234-123456789abc",
        ],
    )
    async def test_malformed_uuid_fails_before_fetch(self, engine, recorder, value):
        outcome = await engine.execute("query ($id: UUID!) { user(id: $id) { id } }", {"id": value})

        assert outcome.data is None
        assert "Invalid UUID" in outcome.errors[0].message
        assert error_codes(outcome) == ["BAD_USER_INPUT"]
        assert recorder.calls == []
        assert outcome.state is RequestState.FAILED

    async def test_known_member_type(self, engine):
        outcome = await engine.execute("{ memberType(id: BASIC) { discount postsLimitPerMonth } }")

        assert outcome.data == {"memberType": {"discount": 2.3, "postsLimitPerMonth": 20}}

    async def test_syntax_error_fails_without_parsing(self, engine, recorder):
        outcome = await engine.execute("{ users { name ")

        assert outcome.data is None
        assert outcome.state is RequestState.FAILED
        assert RequestState.PARSED not in outcome.history
        assert recorder.calls == []


@pytest.mark.asyncio
class TestMutations:
    async def test_create_then_fetch_round_trip(self, engine):
        created = await engine.execute(
            """
            mutation ($dto: CreateUserInput!) {
              createUser(dto: $dto) { id name balance }
            }
            """,
            {"dto": {"name": "dave", "balance": 12.5}},
        )
        user = created.data["createUser"]

        fetched = await engine.execute(
            "query ($id: UUID!) { user(id: $id) { id name balance } }", {"id": user["id"]}
        )

        assert fetched.data["user"] == user
        assert user["name"] == "dave"
        assert user["balance"] == 12.5

    async def test_create_profile_and_post(self, engine, sample_data):
        carol = str(sample_data["carol"]["id"])

        outcome = await engine.execute(
            """
            mutation ($profile: CreateProfileInput!, $post: CreatePostInput!) {
              createProfile(dto: $profile) { userId memberTypeId memberType { id } }
              createPost(dto: $post) { title authorId author { name } }
            }
            """,
            {
                "profile": {
                    "isMale": False,
                    "yearOfBirth": 1985,
                    "userId": carol,
                    "memberTypeId": "BASIC",
                },
                "post": {"title": "hello", "content": "world", "authorId": carol},
            },
        )

        assert outcome.errors == []
        assert outcome.data["createProfile"] == {
            "userId": carol,
            "memberTypeId": "BASIC",
            "memberType": {"id": "BASIC"},
        }
        assert outcome.data["createPost"]["author"] == {"name": "carol"}

    async def test_mutations_run_in_listed_order(self, engine, recorder):
        outcome = await engine.execute(
            """
            mutation {
              first: createUser(dto: { name: "first", balance: 1 }) { id }
              second: createUser(dto: { name: "second", balance: 2 }) { id }
              third: createUser(dto: { name: "third", balance: 3 }) { id }
            }
            """
        )

        assert outcome.errors == []
        created = [call[2]["name"] for call in recorder.calls if call[0] == "create"]
        assert created == ["first", "second", "third"]

    async def test_reads_after_write_see_the_write(self, engine, sample_data):
        alice = str(sample_data["alice"]["id"])

        outcome = await engine.execute(
            """
            mutation ($id: UUID!) {
              changeUser(id: $id, dto: { name: "alicia" }) { name }
              createPost(dto: { title: "new", content: "c", authorId: $id }) {
                author { name posts { title } }
              }
            }
            """,
            {"id": alice},
        )

        assert outcome.data["changeUser"] == {"name": "alicia"}
        author = outcome.data["createPost"]["author"]
        assert author["name"] == "alicia"
        assert len(author["posts"]) == 3

    async def test_change_is_partial(self, engine, sample_data):
        post = sample_data["posts"][0]

        outcome = await engine.execute(
            """
            mutation ($id: UUID!) {
              changePost(id: $id, dto: { title: "renamed" }) { title content }
            }
            """,
            {"id": str(post["id"])},
        )

        assert outcome.data["changePost"] == {"title": "renamed", "content": post["content"]}

    async def test_change_rejects_explicit_null(self, engine, sample_data):
        outcome = await engine.execute(
            "mutation ($id: UUID!) { changeUser(id: $id, dto: { name: null }) { name } }",
            {"id": str(sample_data["alice"]["id"])},
        )

        assert outcome.data is None
        assert error_codes(outcome) == ["BAD_USER_INPUT"]

    async def test_delete_twice(self, engine, sample_data):
        query = "mutation ($id: UUID!) { deletePost(id: $id) }"
        post_id = str(sample_data["posts"][0]["id"])

        first = await engine.execute(query, {"id": post_id})
        second = await engine.execute(query, {"id": post_id})

        assert first.data == {"deletePost": post_id}
        assert second.data is None
        assert error_codes(second) == ["NOT_FOUND"]

    async def test_second_profile_violates_constraint(self, engine, sample_data):
        outcome = await engine.execute(
            """
            mutation ($userId: UUID!) {
              createProfile(dto: {
                isMale: true, yearOfBirth: 2000, userId: $userId, memberTypeId: BASIC
              }) { id }
            }
            """,
            {"userId": str(sample_data["alice"]["id"])},
        )

        assert error_codes(outcome) == ["CONSTRAINT_VIOLATION"]

    async def test_delete_user_cascades(self, engine, seeded_gateway, sample_data):
        alice = str(sample_data["alice"]["id"])

        outcome = await engine.execute(
            "mutation ($id: UUID!) { deleteUser(id: $id) }", {"id": alice}
        )
        after = await engine.execute(
            "{ posts { id } profiles { id } users { subscribedToUser { id } } }"
        )

        assert outcome.data == {"deleteUser": alice}
        assert len(after.data["posts"]) == 1
        assert after.data["profiles"] == []
        assert all(user["subscribedToUser"] == [] for user in after.data["users"])


@pytest.mark.asyncio
class TestSubscriptions:
    async def test_subscribe_then_unsubscribe(self, engine, seeded_gateway, sample_data):
        carol, alice = str(sample_data["carol"]["id"]), str(sample_data["alice"]["id"])
        variables = {"userId": carol, "authorId": alice}

        subscribed = await engine.execute(
            """
            mutation ($userId: UUID!, $authorId: UUID!) {
              subscribeTo(userId: $userId, authorId: $authorId) {
                name userSubscribedTo { name }
              }
            }
            """,
            variables,
        )
        assert subscribed.data["subscribeTo"] == {
            "name": "carol",
            "userSubscribedTo": [{"name": "alice"}],
        }

        unsubscribe = """
            mutation ($userId: UUID!, $authorId: UUID!) {
              unsubscribeFrom(userId: $userId, authorId: $authorId)
            }
        """
        first = await engine.execute(unsubscribe, variables)
        second = await engine.execute(unsubscribe, variables)

        assert first.data == {"unsubscribeFrom": alice}
        remaining = await seeded_gateway.find_many(
            SUBSCRIPTION, {"subscriber_id": uuid.UUID(carol)}
        )
        assert remaining == []
        assert second.data is None
        assert error_codes(second) == ["NOT_FOUND"]

    async def test_subscribe_twice_violates_constraint(self, engine, sample_data):
        outcome = await engine.execute(
            """
            mutation ($userId: UUID!, $authorId: UUID!) {
              subscribeTo(userId: $userId, authorId: $authorId) { id }
            }
            """,
            {
                "userId": str(sample_data["bob"]["id"]),
                "authorId": str(sample_data["alice"]["id"]),
            },
        )

        assert error_codes(outcome) == ["CONSTRAINT_VIOLATION"]

    async def test_subscribe_to_missing_author(self, engine, sample_data):
        outcome = await engine.execute(
            """
            mutation ($userId: UUID!, $authorId: UUID!) {
              subscribeTo(userId: $userId, authorId: $authorId) { id }
            }
            """,
            {"userId": str(sample_data["bob"]["id"]), "authorId": str(uuid.uuid4())},
        )

        assert error_codes(outcome) == ["CONSTRAINT_VIOLATION"]


@pytest.mark.asyncio
class TestRequestState:
    async def test_successful_request_history(self, engine, sample_data):
        outcome = await engine.execute("{ users { name } }")

        assert outcome.history == [
            RequestState.RECEIVED,
            RequestState.PARSED,
            RequestState.RESOLVING,
            RequestState.ASSEMBLED,
            RequestState.RESPONDED,
        ]

    async def test_context_is_per_request(self, engine):
        first = engine.create_context()
        second = engine.create_context()

        assert first["resolution"] is not second["resolution"]
        assert first["resolution"].loader is not second["resolution"].loader
        assert first["resolution"].state is RequestState.RECEIVED


class TestStateMachine:
    def test_valid_path(self, memory_gateway, registry):
        engine = ResolutionEngine(memory_gateway, registry)
        context = engine.create_context()["resolution"]

        for state in (
            RequestState.PARSED,
            RequestState.RESOLVING,
            RequestState.ASSEMBLED,
            RequestState.RESPONDED,
        ):
            context.transition(state)

        assert context.history == [
            RequestState.RECEIVED,
            RequestState.PARSED,
            RequestState.RESOLVING,
            RequestState.ASSEMBLED,
            RequestState.RESPONDED,
        ]

    def test_invalid_transition(self, memory_gateway):
        context = ResolutionEngine(memory_gateway).create_context()["resolution"]

        with pytest.raises(RuntimeError, match="Invalid request state transition"):
            context.transition(RequestState.ASSEMBLED)

    def test_failed_is_terminal(self, memory_gateway):
        context = ResolutionEngine(memory_gateway).create_context()["resolution"]
        context.transition(RequestState.FAILED)

        with pytest.raises(RuntimeError):
            context.transition(RequestState.PARSED)

    def test_discarded_request_is_never_responded(self, memory_gateway):
        from feedgraph.graphql.engine import settle_request

        context = ResolutionEngine(memory_gateway).create_context()["resolution"]
        for state in (RequestState.PARSED, RequestState.RESOLVING, RequestState.ASSEMBLED):
            context.transition(state)
        context.discard()

        assert settle_request(context) is RequestState.ASSEMBLED
        assert RequestState.RESPONDED not in context.history
