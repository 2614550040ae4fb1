import pytest

from beacon.agent import AgentClient, AgentResponse, AgentTransport, StubAgent, start_stub_agent


class RecordingTransport(AgentTransport):
    """Transport double: records each request and replays queued responses."""

    def __init__(self):
        super().__init__(host="agent.test", port=8500)
        self.calls = []
        self.responses = []

    def queue(self, status=200, text="", reason=""):
        self.responses.append(AgentResponse(status=status, text=text, reason=reason))

    def queue_error(self, exc):
        self.responses.append(exc)

    def request(self, method, *segments, params=None, body=None):
        self.calls.append({
            "method": method,
            "path": "/".join(segments),
            "params": params,
            "body": body,
        })
        response = self.responses.pop(0) if self.responses else AgentResponse(status=200)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def last(self):
        return self.calls[-1]


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def client(transport):
    return AgentClient(transport=transport)


@pytest.fixture
def stub_agent():
    """A StubAgent served on an ephemeral local port."""
    agent = StubAgent()
    server = start_stub_agent(agent, host="127.0.0.1", port=0)
    agent.port = server.server_address[1]
    try:
        yield agent
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def stub_client(stub_agent):
    return AgentClient(host="127.0.0.1", port=stub_agent.port, timeout=5)
