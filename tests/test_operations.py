"""Tests for tool selection, envelope fallback and the degraded strategies."""

import asyncio

import pytest

from asset_chat.errors import ToolCallError
from asset_chat.models import Attachment
from asset_chat.operations import AssetOperations, argument_shapes

from conftest import FakeMCPClient, json_result, text_result

LIST = {"resources": [
    {"public_id": "summer/beach/1", "asset_id": "id-1", "secure_url": "https://res.cloudinary.com/d/image/upload/summer/beach/1.jpg"},
    {"public_id": "summer/city/2", "asset_id": "id-2"},
    {"public_id": "winter/3", "asset_id": "id-3"},
    {"public_id": "pets/cat", "asset_id": "id-cat"},
]}


def ops_for(client):
    return AssetOperations(client, call_timeout=5)


class TestToolSelection:

    @pytest.mark.asyncio
    async def test_tool_list_fetched_once(self):
        client = FakeMCPClient(tools=["create-folder", "list-folders"])
        ops = ops_for(client)
        await ops.tool_names()
        await ops.pick_tool("create_folder")
        await ops.pick_tool("list_folders")
        assert client.list_tools_calls == 1

    @pytest.mark.asyncio
    async def test_alias_order_beats_server_order(self):
        client = FakeMCPClient(tools=["assets-delete", "delete-resources-by-public-id"])
        assert await ops_for(client).pick_tool("delete_by_public_id") == "delete-resources-by-public-id"

    @pytest.mark.asyncio
    async def test_fuzzy_only_for_folders(self):
        client = FakeMCPClient(tools=["admin-folders-list", "assets-delete-everything"])
        ops = ops_for(client)
        assert await ops.pick_tool("list_folders") == "admin-folders-list"
        assert await ops.pick_tool("delete_by_public_id") is None


class TestCallWithShapes:

    def test_shape_order(self):
        core = {"folder": "a"}
        assert argument_shapes(core) == [{"folder": "a"}, {"request": core}, {"requestBody": core}]

    @pytest.mark.asyncio
    async def test_falls_through_failing_shapes(self):
        client = FakeMCPClient(responses={"create-folder": [
            RuntimeError("bad args"),
            RuntimeError("still bad"),
            json_result({"success": True}),
        ]})
        result = await ops_for(client).call_with_shapes("create-folder", {"folder": "a"})
        assert result.content == [{"type": "json", "json": {"success": True}}]
        assert [args for _, args in client.calls] == [
            {"folder": "a"}, {"request": {"folder": "a"}}, {"requestBody": {"folder": "a"}},
        ]

    @pytest.mark.asyncio
    async def test_none_when_every_shape_fails(self):
        client = FakeMCPClient(responses={"create-folder": lambda args: RuntimeError("nope")})
        assert await ops_for(client).call_with_shapes("create-folder", {"folder": "a"}) is None
        assert len(client.calls) == 3

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failed_shape(self):
        class SlowFirst(FakeMCPClient):
            async def call_tool(self, name, arguments):
                if len(self.calls) == 0:
                    self.calls.append((name, arguments))
                    await asyncio.sleep(1)
                return await super().call_tool(name, arguments)

        client = SlowFirst(responses={"create-folder": json_result({"result": "ok"})})
        ops = AssetOperations(client, call_timeout=0.01)
        result = await ops.call_with_shapes("create-folder", {"folder": "a"})
        assert result is not None
        assert client.calls[-1][1] == {"request": {"folder": "a"}}


class TestListing:

    @pytest.mark.asyncio
    async def test_list_images_error_raises(self):
        client = FakeMCPClient(responses={"list-images": text_result("quota exceeded", is_error=True)})
        with pytest.raises(ToolCallError, match="quota exceeded"):
            await ops_for(client).list_images()

    @pytest.mark.asyncio
    async def test_list_images_in_folder(self):
        client = FakeMCPClient(responses={"list-images": json_result(LIST)})
        assets = await ops_for(client).list_images_in_folder("/summer/")
        assert [a.id for a in assets] == ["summer/beach/1", "summer/city/2"]

    @pytest.mark.asyncio
    async def test_list_folders_with_tool(self):
        client = FakeMCPClient(
            tools=["folders-list"],
            responses={"folders-list": json_result({"folders": [{"path": "summer/beach"}]})},
        )
        assert await ops_for(client).list_folders("summer") == ["summer/beach"]
        assert client.calls == [("folders-list", {"path": "summer"})]

    @pytest.mark.asyncio
    async def test_list_folders_falls_back_to_image_paths(self):
        client = FakeMCPClient(tools=[], responses={"list-images": json_result(LIST)})
        assert await ops_for(client).list_folders() == ["summer", "winter", "pets"]
        assert await ops_for(client).list_folders("summer") == ["summer/beach", "summer/city"]

    @pytest.mark.asyncio
    async def test_empty_folder_tool_answer_falls_back(self):
        client = FakeMCPClient(
            tools=["list-folders"],
            responses={"list-folders": json_result({"folders": []}), "list-images": json_result(LIST)},
        )
        assert await ops_for(client).list_folders(limit=1) == ["summer"]


class TestWrites:

    @pytest.mark.asyncio
    async def test_upload_arguments(self):
        client = FakeMCPClient(responses={"upload-asset": json_result({
            "public_id": "chat_uploads/cat", "secure_url": "https://res.cloudinary.com/d/image/upload/chat_uploads/cat.jpg",
        })})
        file = Attachment(filename="cat.jpg", content=b"abc", content_type="image/jpeg")
        asset = await ops_for(client).upload(file, "chat_uploads")
        assert asset.id == "chat_uploads/cat"
        args = client.called("upload-asset")[0]
        assert args == {"uploadRequest": {
            "file": "data:image/jpeg;base64,YWJj", "fileName": "cat.jpg", "folder": "chat_uploads",
        }}

    @pytest.mark.asyncio
    async def test_move_renames_into_folder(self):
        client = FakeMCPClient()
        await ops_for(client).move("pets/cat", "/archive/")
        assert client.called("asset-rename") == [{
            "resourceType": "image",
            "requestBody": {"from_public_id": "pets/cat", "to_public_id": "archive/cat"},
        }]

    @pytest.mark.asyncio
    async def test_delete_uses_secondary_alias(self):
        client = FakeMCPClient(tools=["assets-delete"], responses={"assets-delete": json_result({"result": "ok"})})
        outcome = await ops_for(client).delete("pets/cat")
        assert outcome.ok
        assert client.calls == [("assets-delete", {
            "resourceType": "image", "request": {"public_ids": ["pets/cat"], "type": "upload"},
        })]

    @pytest.mark.asyncio
    async def test_delete_falls_back_to_asset_id(self):
        client = FakeMCPClient(tools=["list-images", "delete-asset"], responses={
            "list-images": json_result(LIST),
            "delete-asset": text_result("asset deleted"),
        })
        outcome = await ops_for(client).delete("pets/cat")
        assert outcome.ok
        assert client.called("delete-asset") == [{
            "resourceType": "image", "request": {"asset_id": "id-cat", "invalidate": True},
        }]

    @pytest.mark.asyncio
    async def test_delete_fallback_without_asset_id(self):
        client = FakeMCPClient(responses={"list-images": json_result(LIST)})
        outcome = await ops_for(client).delete("pets/dog")
        assert not outcome.ok
        assert outcome.asset_id_missing
        assert client.called("delete-asset") == []

    @pytest.mark.asyncio
    async def test_tag_by_public_id(self):
        client = FakeMCPClient(
            tools=["assets-update-resource-by-public-id"],
            responses={"assets-update-resource-by-public-id": json_result({"public_id": "pets/cat", "tags": ["a"]})},
        )
        outcome = await ops_for(client).tag("pets/cat", "a")
        assert outcome.ok
        assert outcome.asset is None
        assert client.called("assets-update-resource-by-public-id") == [{
            "resourceType": "image", "request": {"public_id": "pets/cat", "type": "upload", "tags": "a"},
        }]

    @pytest.mark.asyncio
    async def test_tag_through_lookup_tool(self):
        client = FakeMCPClient(tools=["get-resource-by-public-id"], responses={
            "get-resource-by-public-id": json_result({"asset_id": "id-cat"}),
            "asset-update": json_result({"result": "ok"}),
        })
        outcome = await ops_for(client).tag("pets/cat", "a,b")
        assert outcome.ok
        assert client.called("asset-update") == [{"assetId": "id-cat", "resourceUpdateRequest": {"tags": "a,b"}}]
        assert client.called("list-images") == []

    @pytest.mark.asyncio
    async def test_tag_through_list_scan(self):
        client = FakeMCPClient(tools=[], responses={
            "list-images": json_result(LIST),
            "asset-update": text_result("tags updated"),
        })
        outcome = await ops_for(client).tag("winter/3", "snow")
        assert outcome.ok
        assert client.called("asset-update")[0]["assetId"] == "id-3"

    @pytest.mark.asyncio
    async def test_tag_unknown_asset(self):
        client = FakeMCPClient(tools=[], responses={"list-images": json_result(LIST)})
        outcome = await ops_for(client).tag("nobody", "x")
        assert not outcome.ok
        assert client.called("asset-update") == []

    @pytest.mark.asyncio
    async def test_create_folder_without_tool(self):
        client = FakeMCPClient(tools=["list-images"])
        assert await ops_for(client).create_folder("a") is False
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_create_folder_with_secondary_alias(self):
        client = FakeMCPClient(
            tools=["folders-create-folder"],
            responses={"folders-create-folder": json_result({"path": "a", "name": "a"})},
        )
        assert await ops_for(client).create_folder("a") is True
        assert client.calls == [("folders-create-folder", {"folder": "a"})]
