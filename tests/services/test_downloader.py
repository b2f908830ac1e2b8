import httpx
import pytest
import respx

from deadlock_mod_manager.errors import DownloadError
from deadlock_mod_manager.services.downloader import stream_download

URL = "https://files.test/dl/1"


class TestStreamDownload:
    @respx.mock
    @pytest.mark.asyncio
    async def test_writes_file_and_reports_progress(self, tmp_path):
        payload = b"v" * 200_000
        respx.get(URL).mock(return_value=httpx.Response(200, content=payload))
        dest = tmp_path / "mod.zip.part"
        seen: list[tuple[int, int]] = []

        written = await stream_download(URL, dest, lambda d, t: seen.append((d, t)))

        assert written == len(payload)
        assert dest.read_bytes() == payload
        assert seen[-1] == (len(payload), len(payload))
        assert [d for d, _ in seen] == sorted(d for d, _ in seen)

    @respx.mock
    @pytest.mark.asyncio
    async def test_follows_redirect(self, tmp_path):
        respx.get(URL).mock(
            return_value=httpx.Response(302, headers={"Location": "https://cdn.test/real"})
        )
        respx.get("https://cdn.test/real").mock(return_value=httpx.Response(200, content=b"ok"))
        dest = tmp_path / "mod.vpk.part"

        await stream_download(URL, dest)

        assert dest.read_bytes() == b"ok"

    @respx.mock
    @pytest.mark.asyncio
    async def test_http_status_error(self, tmp_path):
        respx.get(URL).mock(return_value=httpx.Response(404))
        dest = tmp_path / "mod.zip.part"

        with pytest.raises(DownloadError, match="404"):
            await stream_download(URL, dest)
        assert not dest.exists()

    @respx.mock
    @pytest.mark.asyncio
    async def test_network_error(self, tmp_path):
        respx.get(URL).mock(side_effect=httpx.ConnectError("connection refused"))
        dest = tmp_path / "mod.zip.part"

        with pytest.raises(DownloadError, match="connection refused"):
            await stream_download(URL, dest)
        assert not dest.exists()

    @respx.mock
    @pytest.mark.asyncio
    async def test_progress_failure_removes_partial(self, tmp_path):
        respx.get(URL).mock(return_value=httpx.Response(200, content=b"data"))
        dest = tmp_path / "mod.zip.part"

        def _boom(_d: int, _t: int) -> None:
            raise KeyError("listener")

        with pytest.raises(KeyError):
            await stream_download(URL, dest, _boom)
        assert not dest.exists()

    @respx.mock
    @pytest.mark.asyncio
    async def test_shared_client_left_open(self, tmp_path):
        respx.get(URL).mock(return_value=httpx.Response(200, content=b"data"))
        async with httpx.AsyncClient() as client:
            await stream_download(URL, tmp_path / "a.part", client=client)
            assert not client.is_closed

    @respx.mock
    @pytest.mark.asyncio
    async def test_shared_client_follows_redirect(self, tmp_path):
        respx.get(URL).mock(
            return_value=httpx.Response(302, headers={"Location": "https://cdn.test/real"})
        )
        respx.get("https://cdn.test/real").mock(return_value=httpx.Response(200, content=b"ok"))
        dest = tmp_path / "mod.vpk.part"

        async with httpx.AsyncClient() as client:
            await stream_download(URL, dest, client=client)

        assert dest.read_bytes() == b"ok"
