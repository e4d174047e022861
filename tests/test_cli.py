import tempfile
import unittest
from pathlib import Path
from unittest import mock

import yaml

from _test_support import dockerhub_deployment
from hubdeploy import cli
from hubdeploy.config import ConfigError, ServerConfig
from hubdeploy.hooks import HandlerRegistry
from hubdeploy.settings import Settings


class CliTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.work_dir = self.root / "work"
        self.work_dir.mkdir()

    def tearDown(self):
        self._tmp.cleanup()

    def write_config(self, **overrides):
        payload = {
            "server_url": "https://deploy.example.com",
            "results_dir": str(self.root / "results"),
            "deployments": [
                {
                    "type": "dockerhub",
                    "work_dir": str(self.work_dir),
                    "command": ["true"],
                    "payload": {"repo_name": "me/app"},
                }
            ],
        }
        payload.update(overrides)
        config_path = self.root / "hubdeploy.yml"
        config_path.write_text(yaml.safe_dump(payload), encoding="utf-8")
        return config_path

    def test_parser_defaults_come_from_settings(self):
        defaults = Settings(port=8123, prefix="/hooks", config_file="other.yml")
        args = cli.build_parser(defaults).parse_args([])
        self.assertEqual(args.port, 8123)
        self.assertEqual(args.prefix, "/hooks")
        self.assertEqual(args.config, "other.yml")
        self.assertFalse(args.verbose)

        args = cli.build_parser(defaults).parse_args(["-p", "9000", "-c", "x.yml", "-v", "-l", "-"])
        self.assertEqual((args.port, args.config, args.verbose, args.log), (9000, "x.yml", True, "-"))

    def test_build_pipeline_creates_results_dir(self):
        config = ServerConfig(
            server_url="https://deploy.example.com",
            results_dir=str(self.root / "out"),
            deployments=[dockerhub_deployment(self.work_dir)],
        )
        pipeline, store = cli.build_pipeline(config, HandlerRegistry.default(), queue_size=5)
        self.assertTrue((self.root / "out").is_dir())
        self.assertIs(pipeline.results_store, store)
        self.assertEqual(pipeline.jobs.maxsize, 5)
        self.assertEqual(pipeline.server_url, "https://deploy.example.com")
        self.assertFalse(pipeline.running)

    def test_build_pipeline_rejects_unusable_config(self):
        config = ServerConfig(deployments=[dockerhub_deployment(self.root / "missing")])
        with self.assertRaises(ConfigError):
            cli.build_pipeline(config, HandlerRegistry.default())

    @mock.patch("hubdeploy.cli.configure_logging")
    @mock.patch("hubdeploy.cli.uvicorn.run")
    def test_main_runs_server(self, run, configure_logging):
        config_path = self.write_config()
        cli.main(["-c", str(config_path), "--host", "0.0.0.0", "-p", "9001", "-l", "-"])

        configure_logging.assert_called_once_with("-", False)
        run.assert_called_once()
        _, kwargs = run.call_args
        self.assertEqual((kwargs["host"], kwargs["port"]), ("0.0.0.0", 9001))
        self.assertNotIn("ssl_certfile", kwargs)

    @mock.patch("hubdeploy.cli.configure_logging")
    @mock.patch("hubdeploy.cli.uvicorn.run")
    def test_main_enables_tls_with_cert_and_key(self, run, configure_logging):
        config_path = self.write_config()
        cli.main(["-c", str(config_path), "--cert", "server.crt", "--key", "server.key"])
        _, kwargs = run.call_args
        self.assertEqual(kwargs["ssl_certfile"], "server.crt")
        self.assertEqual(kwargs["ssl_keyfile"], "server.key")

    @mock.patch("hubdeploy.cli.configure_logging")
    @mock.patch("hubdeploy.cli.uvicorn.run")
    def test_main_exits_when_all_deployments_disabled(self, run, configure_logging):
        config_path = self.write_config(
            deployments=[
                {
                    "type": "dockerhub",
                    "work_dir": str(self.root / "missing"),
                    "command": ["true"],
                    "payload": {"repo_name": "me/app"},
                }
            ]
        )
        with self.assertRaises(SystemExit):
            cli.main(["-c", str(config_path)])
        run.assert_not_called()


if __name__ == "__main__":
    unittest.main()
