"""
Chunked upload protocol.

The four logical calls of the remote chunked-upload service.
"""
from typing import Dict, Any, Optional
import aiohttp

from .async_client import AsyncAPIClient
from .errors import PinmeAPIError
from ..upload.models import SessionInfo, StatusReport


class ChunkAPI:
    """
    Chunked upload endpoints on top of AsyncAPIClient.

    Responsibilities:
    - Build request bodies for init/upload/complete/status
    - Convert responses into upload models; a malformed payload raises
      PinmeAPIError like any other server error
    """

    INIT_ENDPOINT = 'chunk/init'
    UPLOAD_ENDPOINT = 'chunk/upload'
    COMPLETE_ENDPOINT = 'chunk/complete'
    STATUS_ENDPOINT = 'up_status'

    def __init__(self, client: AsyncAPIClient):
        self._client = client

    async def init_session(
        self,
        file_name: str,
        file_size: int,
        digest: str,
        is_directory: bool,
        uid: str
    ) -> SessionInfo:
        """Open a transfer session; the server chooses the chunk size."""
        data = await self._client.post_json(self.INIT_ENDPOINT, {
            'file_name': file_name,
            'file_size': file_size,
            'md5': digest,
            'is_directory': is_directory,
            'uid': uid,
        })
        try:
            return SessionInfo.from_response(data)
        except (KeyError, TypeError, ValueError) as e:
            raise PinmeAPIError(-1, f"Malformed init response: {e!r}") from e

    async def upload_chunk(
        self,
        session_id: str,
        chunk_index: int,
        data: bytes,
        uid: str
    ) -> Dict[str, Any]:
        """Upload one chunk as multipart form data; returns the ack."""
        form = aiohttp.FormData()
        form.add_field('session_id', session_id)
        form.add_field('chunk_index', str(chunk_index))
        form.add_field('uid', uid)
        form.add_field(
            'chunk',
            data,
            filename=f'chunk_{chunk_index}',
            content_type='application/octet-stream'
        )
        return await self._client.post_form(self.UPLOAD_ENDPOINT, form)

    async def complete_session(
        self,
        session_id: str,
        uid: str,
        import_as_archive: bool = False
    ) -> str:
        """Request finalization; returns the trace id of the backend job."""
        body: Dict[str, Any] = {'session_id': session_id, 'uid': uid}
        if import_as_archive:
            body['import_as_car'] = True
        data = await self._client.post_json(self.COMPLETE_ENDPOINT, body)
        trace_id = data.get('trace_id') if isinstance(data, dict) else None
        if trace_id is None or trace_id == '':
            raise PinmeAPIError(-1, "Malformed complete response: missing trace_id")
        return str(trace_id)

    async def get_status(
        self,
        trace_id: str,
        uid: str,
        timeout: Optional[float] = None
    ) -> StatusReport:
        """Fetch the status of the backend job."""
        data = await self._client.get_json(
            self.STATUS_ENDPOINT,
            {'trace_id': trace_id, 'uid': uid},
            timeout=timeout,
            require_data=False
        )
        return StatusReport.from_response(data)
