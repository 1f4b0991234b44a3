import json
from http import HTTPStatus
from typing import Any
from typing import Optional

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from websockets.asyncio.server import serve


def make_transcript(job_id: str = "job-1") -> dict[str, Any]:
    return {
        "format": "2.9",
        "job": {"id": job_id, "created_at": "2024-01-01T00:00:00Z", "data_name": "audio.wav", "duration": 2},
        "metadata": {
            "created_at": "2024-01-01T00:00:05Z",
            "type": "transcription",
            "language_pack_info": {"word_delimiter": " "},
        },
        "results": [
            {"type": "word", "start_time": 0.1, "end_time": 0.4, "alternatives": [{"content": "Hello", "confidence": 1.0}]},
            {"type": "word", "start_time": 0.5, "end_time": 0.9, "alternatives": [{"content": "world", "confidence": 0.8}]},
            {
                "type": "punctuation",
                "start_time": 0.9,
                "end_time": 0.9,
                "attaches_to": "previous",
                "alternatives": [{"content": ".", "confidence": 1.0}],
            },
        ],
    }


class FakeBatchService:
    """In-process stand-in for the batch API, driven through aiohttp.web."""

    def __init__(self) -> None:
        self.valid_keys = {"valid-key"}
        self.seen_keys: list[str] = []
        self.seen_queries: list[dict[str, str]] = []
        self.uploads: list[dict[str, Any]] = []
        self.statuses: list[str] = ["done"]
        self.errors: list[dict[str, Any]] = []
        self.fail_with: Optional[int] = None
        self.delete_returns_job = True
        self.url = ""

    def app(self) -> web.Application:
        app = web.Application(middlewares=[self._auth_middleware])
        app.router.add_post("/v2/jobs", self.create_job)
        app.router.add_get("/v2/jobs", self.list_jobs)
        app.router.add_get("/v2/jobs/{job_id}", self.get_job)
        app.router.add_delete("/v2/jobs/{job_id}", self.delete_job)
        app.router.add_get("/v2/jobs/{job_id}/transcript", self.get_transcript)
        app.router.add_get("/v2/jobs/{job_id}/data", self.get_data)
        app.router.add_get("/v1/discovery/features", self.features)
        return app

    @web.middleware
    async def _auth_middleware(self, request: web.Request, handler: Any) -> web.StreamResponse:
        key = request.headers.get("Authorization", "").removeprefix("Bearer ")
        self.seen_keys.append(key)
        self.seen_queries.append(dict(request.query))
        if key not in self.valid_keys:
            return web.json_response({"code": 401, "error": "Permission Denied"}, status=401)
        if self.fail_with is not None:
            return web.json_response(
                {"code": self.fail_with, "error": "Internal Server Error", "detail": "try later"},
                status=self.fail_with,
            )
        return await handler(request)

    async def create_job(self, request: web.Request) -> web.Response:
        form = await request.post()
        config = json.loads(form["config"])
        data_file = form.get("data_file")
        self.uploads.append(
            {
                "config": config,
                "filename": data_file.filename if data_file is not None else None,
                "data": data_file.file.read() if data_file is not None else None,
            }
        )
        return web.json_response({"id": f"job-{len(self.uploads)}", "created_at": "2024-01-01T00:00:00Z"}, status=201)

    async def list_jobs(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "jobs": [
                    {"id": "job-1", "status": "done", "created_at": "2024-01-01T00:00:00Z", "data_name": "a.wav"},
                    {"id": "job-2", "status": "running", "created_at": "2024-01-02T00:00:00Z", "data_name": "b.wav"},
                ]
            }
        )

    async def get_job(self, request: web.Request) -> web.Response:
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        job = {
            "id": request.match_info["job_id"],
            "status": status,
            "created_at": "2024-01-01T00:00:00Z",
            "data_name": "audio.wav",
            "config": {"type": "transcription", "transcription_config": {"language": "en"}},
        }
        if self.errors:
            job["errors"] = self.errors
        return web.json_response({"job": job})

    async def delete_job(self, request: web.Request) -> web.Response:
        if not self.delete_returns_job:
            return web.json_response({})
        return web.json_response(
            {
                "job": {
                    "id": request.match_info["job_id"],
                    "status": "deleted",
                    "created_at": "2024-01-01T00:00:00Z",
                    "data_name": "audio.wav",
                }
            }
        )

    async def get_transcript(self, request: web.Request) -> web.Response:
        fmt = request.query.get("format", "json-v2")
        if fmt == "txt":
            return web.Response(text="Hello world.", content_type="text/plain")
        if fmt == "srt":
            return web.Response(text="1\n00:00:00,100 --> 00:00:00,900\nHello world.\n", content_type="application/x-subrip")
        return web.json_response(make_transcript(request.match_info["job_id"]))

    async def get_data(self, request: web.Request) -> web.Response:
        return web.Response(body=b"RIFF-audio-bytes", content_type="audio/wav")

    async def features(self, request: web.Request) -> web.Response:
        return web.json_response({"batch": {"transcription": [{"locale": "en"}]}})


@pytest_asyncio.fixture
async def batch_service():
    service = FakeBatchService()
    server = TestServer(service.app())
    await server.start_server()
    service.url = str(server.make_url("/v2"))
    yield service
    await server.close()


class FakeRealtimeService:
    """In-process stand-in for the realtime API, served with websockets."""

    def __init__(self) -> None:
        self.valid_keys = {"valid-key"}
        self.seen_keys: list[str] = []
        self.request_paths: list[str] = []
        self.received: list[Any] = []
        self.error_on_audio = False
        self.error_on_start = False
        self.url = ""

    def process_request(self, connection: Any, request: Any) -> Any:
        key = request.headers.get("Authorization", "").removeprefix("Bearer ")
        self.seen_keys.append(key)
        self.request_paths.append(request.path)
        if key not in self.valid_keys:
            return connection.respond(HTTPStatus.UNAUTHORIZED, "Unauthorized\n")
        return None

    async def handler(self, websocket: Any) -> None:
        start = json.loads(await websocket.recv())
        self.received.append(start)
        if self.error_on_start:
            await websocket.send(json.dumps({"message": "Error", "type": "invalid_model", "reason": "bad lang"}))
            return
        await websocket.send(
            json.dumps(
                {
                    "message": "RecognitionStarted",
                    "id": "session-1",
                    "language_pack_info": {"word_delimiter": " ", "language_description": "English"},
                }
            )
        )

        seq_no = 0
        async for frame in websocket:
            if isinstance(frame, bytes):
                seq_no += 1
                self.received.append(frame)
                if self.error_on_audio:
                    await websocket.send(json.dumps({"message": "Error", "type": "data_error", "reason": "bad audio"}))
                    return
                await websocket.send(json.dumps({"message": "AudioAdded", "seq_no": seq_no}))
                continue

            message = json.loads(frame)
            self.received.append(message)
            if message["message"] == "EndOfStream":
                await websocket.send(json.dumps(self._transcript(seq_no, partial=True)))
                await websocket.send(json.dumps(self._transcript(seq_no, partial=False)))
                await websocket.send(json.dumps({"message": "EndOfTranscript"}))
                return

    @staticmethod
    def _transcript(chunks: int, partial: bool) -> dict[str, Any]:
        return {
            "message": "AddPartialTranscript" if partial else "AddTranscript",
            "metadata": {"transcript": f"{chunks} chunks", "start_time": 0.0, "end_time": 1.0},
            "results": [
                {
                    "type": "word",
                    "start_time": 0.0,
                    "end_time": 1.0,
                    "alternatives": [{"content": f"{chunks}", "confidence": 0.9, "speaker": "S1"}],
                }
            ],
        }


@pytest_asyncio.fixture
async def rt_service():
    service = FakeRealtimeService()
    async with serve(service.handler, "127.0.0.1", 0, process_request=service.process_request) as server:
        port = list(server.sockets)[0].getsockname()[1]
        service.url = f"ws://127.0.0.1:{port}/v2"
        yield service


@pytest.fixture(autouse=True)
def _no_env_key(monkeypatch):
    monkeypatch.delenv("SPEECHMATICS_API_KEY", raising=False)
    monkeypatch.delenv("SPEECHMATICS_BATCH_URL", raising=False)
    monkeypatch.delenv("SPEECHMATICS_RT_URL", raising=False)
