"""
Todo core unit tests for the CLI
"""

import os
import sys
import json
import subprocess
import unittest as _unittest
from typing import Optional

import sqlalchemy.orm

from todo_core.api import auth
from todo_core.persistence import database, models

from . import conf, utils


class StandaloneCLITests(utils.BaseTest):
    def _run_cmd(self, return_code: int, *args: str, config: bool = True, timeout: float = 10) -> str:
        cmd = [sys.executable, "-m", "todo_core", *args]
        if config:
            cmd += ["--config", self.config_file]
        p = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, timeout=timeout)
        self.assertEqual(return_code, p.returncode, (cmd, p.stdout.decode("UTF-8"), p.stderr.decode("UTF-8")))
        return p.stdout.decode("UTF-8")

    def _add_user(self, email: str, tasks: int = 0) -> int:
        engine = database.make_engine(self.database_url, conf.SQLALCHEMY_ECHOING)
        models.Base.metadata.create_all(bind=engine)
        session_maker = sqlalchemy.orm.sessionmaker(autoflush=False, bind=engine)
        with session_maker() as session:
            user = models.User(
                email=email,
                password=auth.hash_password("password123", self.get_config().server),
                display_name=email.split("@")[0]
            )
            user.tasks = [models.Task(title=f"task{i}") for i in range(tasks)]
            session.add(user)
            session.commit()
            user_id = user.id
        engine.dispose()
        return user_id

    def _count(self, model) -> int:
        engine = database.make_engine(self.database_url)
        with sqlalchemy.orm.sessionmaker(bind=engine)() as session:
            result = session.query(model).count()
        engine.dispose()
        return result

    def test_help(self):
        self._run_cmd(0, "-h", config=False)
        self._run_cmd(0, "--help", config=False)
        self._run_cmd(0, "users", "--help", config=False)
        self._run_cmd(0, "users", "show", "--help", config=False)
        self._run_cmd(0, "users", "del", "--help", config=False)
        self._run_cmd(0, "init", "--help", config=False)
        self._run_cmd(0, "run", "--help", config=False)
        self._run_cmd(0, "systemd", "--help", config=False)
        self._run_cmd(2, config=False)
        self._run_cmd(2, "users", config=False)

    def test_init_command(self):
        os.remove(self.config_file)
        self._run_cmd(0, "init", "--database", self.database_url)
        self.assertTrue(os.path.exists(self.config_file))
        with open(self.config_file) as f:
            self.assertEqual(self.database_url, json.load(f)["database"]["connection"])
        self.assertEqual(0, self._count(models.User))
        self._run_cmd(0, "init")

    def test_users_utilities(self):
        def _show(json_output: bool = False, indent: Optional[int] = None) -> str:
            args = ["users", "show"]
            if json_output:
                args.append("--json")
            if indent is not None:
                args += ["--indent", str(indent)]
            return self._run_cmd(0, *args)

        self._run_cmd(0, "init")
        self.assertEqual([], json.loads(_show(True)))

        first = self._add_user("first@example.com", tasks=3)
        second = self._add_user("second@example.com", tasks=1)
        users = json.loads(_show(True, 2))
        self.assertEqual([first, second], [user["id"] for user in users])
        self.assertEqual(["first@example.com", "second@example.com"], [user["email"] for user in users])
        self.assertNotIn("password", users[0])
        self.assertIn("first@example.com", _show())
        self.assertEqual(4, self._count(models.Task))

        self._run_cmd(0, "users", "del", "first@example.com")
        self.assertEqual([second], [user["id"] for user in json.loads(_show(True))])
        self.assertEqual(1, self._count(models.Task))
        self._run_cmd(1, "users", "del", "first@example.com")

        self._run_cmd(0, "users", "del", str(second))
        self.assertEqual([], json.loads(_show(True)))
        self.assertEqual(0, self._count(models.Task))
        self._run_cmd(1, "users", "del", str(second))

    def test_systemd(self):
        target = os.path.join("/tmp", f"todo_core_test_{os.getpid()}.service")
        if os.path.exists(target):
            os.unlink(target)
        self._run_cmd(0, "systemd", "--path", target, config=False)
        self.assertTrue(os.path.exists(target))
        with open(target) as f:
            content = f.read()
        self.assertIn("-m todo_core run", content)
        self._run_cmd(1, "systemd", "--path", target, config=False)
        self._run_cmd(0, "systemd", "--force", "--path", target, config=False)
        os.unlink(target)


if __name__ == '__main__':
    _unittest.main()
