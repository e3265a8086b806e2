"""Shared fixtures: fake HTTP session, temporary vault, recording sleep."""

import json

import pytest

from paper_extractor.settings import Settings
from paper_extractor.vault import Vault

ARXIV_ID = "2301.00001"
ARXIV_TITLE = "Attention Is: All You Need?"

ABS_HTML = f"""<html><head>
<meta name="citation_title" content="{ARXIV_TITLE}">
<meta name="citation_author" content="Doe, Jane">
</head><body>abstract</body></html>"""

PAPER_HTML = """<html><head><title>paper</title></head><body><article>
<h1>Introduction</h1>
<p>We study transformers for sequence transduction. The method relies entirely on attention.</p>
<p>Experiments on translation show strong results with less training time than recurrent models.</p>
</article></body></html>"""


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", content: bytes | None = None, json_body=None):
        self.status_code = status_code
        if json_body is not None:
            text = json.dumps(json_body)
        self.text = text
        self.content = content if content is not None else text.encode("utf-8")

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """requests.Session stand-in keyed by (method, url).

    Each route holds a queue of responses (or exceptions to raise); the
    last item repeats. Unknown routes answer 404.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method: str, url: str, *responses) -> "FakeSession":
        self.routes[(method, url)] = list(responses)
        return self

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append((method, url, kwargs))
        queue = self.routes.get((method, url))
        if not queue:
            return FakeResponse(404, text="not found")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        return item

    def urls(self, method: str | None = None) -> list[str]:
        return [url for m, url, _ in self.calls if method is None or m == method]


class RecordingSleep:
    """Async sleep replacement that records delays and returns immediately."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class Notices:
    """Collects user notices instead of printing them."""

    def __init__(self):
        self.messages = []

    def __call__(self, message: str, level: str = "info") -> None:
        self.messages.append((level, message))

    def texts(self) -> list[str]:
        return [message for _, message in self.messages]


def read_log(vault: Vault, log_dir: str = "logs") -> list[str]:
    folder = vault.full_path(log_dir)
    if not folder.is_dir():
        return []
    lines = []
    for path in sorted(folder.glob("paper_extractor_*.log")):
        lines.extend(path.read_text(encoding="utf-8").splitlines())
    return lines


def arxiv_session(html_status: int = 200, pdf_status: int = 200) -> FakeSession:
    session = FakeSession()
    session.add("GET", f"https://arxiv.org/abs/{ARXIV_ID}", FakeResponse(200, text=ABS_HTML))
    session.add("GET", f"https://arxiv.org/html/{ARXIV_ID}", FakeResponse(html_status, text=PAPER_HTML))
    session.add("GET", f"https://arxiv.org/pdf/{ARXIV_ID}", FakeResponse(pdf_status, content=b"%PDF-1.7 fake"))
    return session


@pytest.fixture
def vault(tmp_path) -> Vault:
    root = tmp_path / "vault"
    root.mkdir()
    return Vault(root)


@pytest.fixture
def notices() -> Notices:
    return Notices()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def env_file(tmp_path):
    """Write an env file outside the vault; returns a writer taking key/value pairs."""
    path = tmp_path / "paper.env"

    def write(**values) -> str:
        path.write_text("".join(f"{k}={v}\n" for k, v in values.items()), encoding="utf-8")
        return str(path)

    return write


@pytest.fixture
def settings(vault) -> Settings:
    vault.write_text("prompts/summary.md", "You are a careful reviewer of ML papers.")
    return Settings(log_dir="logs", system_prompt_path="prompts/summary.md", env_path="", template_path="")


@pytest.fixture
def note_path(vault) -> str:
    path = "papers/inbox.md"
    vault.write_text(path, f"# Inbox\n\n###### url_01:\nhttps://arxiv.org/abs/{ARXIV_ID}\n")
    return path

