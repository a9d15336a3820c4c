from davtasks.protocol import DAVResponse
from examples import tasklist

from .fixture_helpers import (
    TASKS_URL,
    discovery_server,
    make_client,
    task_entry,
    task_query_response,
)


class TestExamples:
    def client(self):
        server = discovery_server()
        server.responses[("REPORT", TASKS_URL)] = task_query_response(
            task_entry("/dav/calendars/user/tasks/1.ics")
        )
        server.responses[("PUT", TASKS_URL + "1.ics")] = DAVResponse(
            status=201, headers={}, body=b""
        )
        return server, make_client(server)

    def test_list(self, capsys):
        server, client = self.client()
        tasklist.run(client, ["tasklist.py"])
        out = capsys.readouterr().out
        assert "1. [X] Bake bread" in out
        assert "2. [ ] Buy milk" in out
        assert server.requests_for("PUT") == []

    def test_toggle(self, capsys):
        server, client = self.client()
        task_list = tasklist.run(client, ["tasklist.py", "2"])
        assert "Toggling task 2" in capsys.readouterr().out
        [put] = server.requests_for("PUT")
        assert put.url == TASKS_URL + "1.ics"
        assert task_list.tasks()[0].is_done

    def test_out_of_range(self):
        server, client = self.client()
        tasklist.run(client, ["tasklist.py", "3"])
        assert server.requests_for("PUT") == []
