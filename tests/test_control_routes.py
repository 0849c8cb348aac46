import tempfile
import unittest
from datetime import timezone
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock, patch

from dzweb.core.config import build_default_config
from dzweb.core.errors import AlreadyRunningError, NotRunningError, TerminationError
from dzweb.main import create_app
from dzweb.services import process_control
from dzweb.services.supervisor import ServerSupervisor
from dzweb.state import LifecycleState, ServerStatus


def make_loggers():
    return SimpleNamespace(
        log_action=Mock(),
        log_system=Mock(),
        log_exception=Mock(),
        log_output=Mock(),
    )


def make_settings(log_dir):
    return SimpleNamespace(display_tz=timezone.utc, log_dir=Path(log_dir))


class ControlRouteTests(unittest.TestCase):
    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.server_dir = tmp.name
        self.loggers = make_loggers()
        self.supervisor = Mock()
        app = create_app(make_settings(tmp.name), supervisor=self.supervisor, loggers=self.loggers)
        self.client = app.test_client()

    def test_start_success(self):
        response = self.client.post("/api/server/start")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"message": "Server started successfully"})
        self.supervisor.start.assert_called_once_with()
        self.loggers.log_action.assert_called_once_with("start")

    def test_start_failure_is_coarse_500_but_logged_by_kind(self):
        self.supervisor.start.side_effect = AlreadyRunningError()

        response = self.client.post("/api/server/start")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json(), {"error": "Failed to start server"})
        self.loggers.log_action.assert_called_once_with(
            "start", rejection_message="AlreadyRunningError: Server is already running"
        )

    def test_stop_success_and_failures(self):
        response = self.client.post("/api/server/stop")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"message": "Server stopped successfully"})

        for error in (NotRunningError(), TerminationError("still alive")):
            with self.subTest(error=type(error).__name__):
                self.supervisor.stop.side_effect = error
                response = self.client.post("/api/server/stop")
                self.assertEqual(response.status_code, 500)
                self.assertEqual(response.get_json(), {"error": "Failed to stop server"})

    def test_status_payload_shape(self):
        self.supervisor.get_status.return_value = ServerStatus(
            state=LifecycleState.RUNNING,
            players=None,
            uptime="1:02:05",
            pid=4242,
            config=build_default_config(self.server_dir),
        )

        response = self.client.get("/api/server/status")

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertTrue(payload["isRunning"])
        self.assertIsNone(payload["players"])
        self.assertEqual(payload["uptime"], "1:02:05")
        self.assertEqual(payload["state"], "running")
        self.assertEqual(payload["config"]["serverPort"], 2302)
        self.assertEqual(
            set(payload["config"]),
            {
                "serverName",
                "serverDirectory",
                "serverPort",
                "serverConfig",
                "serverProfile",
                "serverCPU",
                "mods",
                "autoRestart",
                "restartInterval",
            },
        )

    def test_unhandled_error_returns_json_500(self):
        self.supervisor.get_status.side_effect = RuntimeError("boom")

        response = self.client.get("/api/server/status")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json()["error"], "internal_error")
        self.loggers.log_exception.assert_called_once()

    def test_unknown_route_stays_404(self):
        response = self.client.get("/api/server/nope")

        self.assertEqual(response.status_code, 404)
        self.loggers.log_exception.assert_not_called()


class ConfigRouteTests(unittest.TestCase):
    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.loggers = make_loggers()
        self.supervisor = ServerSupervisor(build_default_config(tmp.name))
        self.addCleanup(self.supervisor.shutdown)
        app = create_app(make_settings(tmp.name), supervisor=self.supervisor, loggers=self.loggers)
        self.client = app.test_client()

    def test_partial_config_update_merges(self):
        response = self.client.post("/api/server/config", json={"serverPort": 2303, "serverCPU": 4})

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertEqual(payload["serverPort"], 2303)
        self.assertEqual(payload["serverCPU"], 4)
        self.assertEqual(payload["serverConfig"], "serverDZ.cfg")
        self.assertEqual(self.client.get("/api/server/status").get_json()["config"]["serverPort"], 2303)

    def test_invalid_config_rejected_with_field(self):
        response = self.client.post("/api/server/config", json={"serverPort": 99999})

        self.assertEqual(response.status_code, 400)
        payload = response.get_json()
        self.assertEqual(payload["error"], "invalid_config")
        self.assertEqual(payload["field"], "serverPort")
        self.assertEqual(self.supervisor.get_config().server_port, 2302)

    def test_nul_profile_rejected_without_change(self):
        response = self.client.post("/api/server/config", json={"serverProfile": "prof\x00iles"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["field"], "serverProfile")
        self.assertEqual(self.supervisor.get_config().server_profile, "profiles")

    def test_unexpected_launch_error_keeps_start_contract(self):
        with patch.object(process_control, "spawn_server", side_effect=ValueError("embedded null byte")):
            response = self.client.post("/api/server/start")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json(), {"error": "Failed to start server"})
        self.assertEqual(self.client.get("/api/server/status").get_json()["state"], "stopped")
        self.loggers.log_exception.assert_not_called()

    def test_get_config(self):
        response = self.client.get("/api/server/config")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["serverName"], "DayZ Server")

    def test_mods_replace_list_wholesale(self):
        self.client.post("/api/server/mods", json={"mods": ["CF", "Trader"]})
        response = self.client.post("/api/server/mods", json={"mods": ["Expansion"]})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["mods"], ["Expansion"])

    def test_mods_require_list(self):
        response = self.client.post("/api/server/mods", json={"mods": "CF"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["field"], "mods")

        response = self.client.post("/api/server/mods", json={})
        self.assertEqual(response.status_code, 400)

    def test_stopped_status_reports_zero_uptime(self):
        payload = self.client.get("/api/server/status").get_json()

        self.assertFalse(payload["isRunning"])
        self.assertEqual(payload["uptime"], "0:00:00")
        self.assertIsNone(payload["players"])
        self.assertIsNone(payload["pid"])


if __name__ == "__main__":
    unittest.main()
