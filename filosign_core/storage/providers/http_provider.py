# filosign_core/storage/providers/http_provider.py
import requests
from filosign_core.envelope import EncryptedEnvelope
from filosign_core.errors import EnvelopeNotFound, StoreUnavailable
from filosign_core.logger import get_logger
from filosign_core.storage.provider import EnvelopeStore

log = get_logger("FiloSign.Storage.HTTP")


class HTTPEnvelopeStore(EnvelopeStore):
    """
    Envelope store backed by a remote blob service.

    Routes:
        PUT    {base}/envelopes/{id}   body = envelope JSON
        GET    {base}/envelopes/{id}   200 envelope JSON | 404
        HEAD   {base}/envelopes/{id}   200 | 404
        DELETE {base}/envelopes/{id}

    One request per call, no retries.
    """
    def __init__(self, base_url: str, timeout: float = 5, session: requests.Session = None, token: str = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._token = token

    def _headers(self):
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _request(self, method: str, retrieval_id: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}/envelopes/{retrieval_id}"
        log.debug(f"[HTTP STORE] {method} {url}")
        try:
            res = self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            log.error(f"[HTTP STORE] {method} {url} unreachable: {e}")
            raise StoreUnavailable(f"envelope store unreachable: {e}") from e

        if res.status_code == 404:
            raise EnvelopeNotFound(retrieval_id)
        if not res.ok:
            log.error(f"[HTTP STORE] {method} {url} -> {res.status_code}: {res.text}")
            raise StoreUnavailable(f"envelope store returned {res.status_code} for {method} {retrieval_id}")
        return res

    def _put(self, retrieval_id: str, envelope: EncryptedEnvelope) -> None:
        self._request("PUT", retrieval_id, data=envelope.to_json_bytes())
        log.info(f"[HTTP STORE] stored {retrieval_id}")

    def _get(self, retrieval_id: str) -> EncryptedEnvelope:
        res = self._request("GET", retrieval_id)
        return EncryptedEnvelope.from_json(res.content)

    def _exists(self, retrieval_id: str) -> bool:
        try:
            self._request("HEAD", retrieval_id)
        except EnvelopeNotFound:
            return False
        return True

    def _delete(self, retrieval_id: str) -> None:
        try:
            self._request("DELETE", retrieval_id)
        except EnvelopeNotFound:
            pass
