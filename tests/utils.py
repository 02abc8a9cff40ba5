"""
Helper functions to make writing unit tests for the Todo core easier
"""

import os
import sys
import enum
import random
import string
import secrets
import unittest
import subprocess
from typing import Iterable, List, Mapping, Optional, Tuple, Type, Union

import pydantic
import requests
import sqlalchemy.orm
from sqlalchemy.engine import Engine as _Engine

from todo_core import settings as _settings
from todo_core.api import auth
from todo_core.persistence import database, models
from todo_core.schemas import config as _config

from . import conf


class DatabaseType(enum.IntEnum):
    """
    Enum to simply determine which database is currently in use
    """

    SQLITE = enum.auto()
    MYSQL = enum.auto()
    POSTGRES = enum.auto()


class BaseTest(unittest.TestCase):
    """
    A base class for unit tests which introduces simple setup and teardown of unit tests

    If a subclass needs special setup or teardown functionality, it **MUST**
    call the superclasses setup and teardown methods: the superclass setup
    method at the beginning of the subclass setup method, the superclass
    teardown method at the end of the subclass teardown method.
    """

    config_file: Optional[str] = None
    database_url: Optional[str] = None
    database_type: Optional[DatabaseType] = None
    _database_file: Optional[str] = None

    def setUp(self) -> None:
        self.config_file = os.path.abspath(f"config_{os.getpid()}_{secrets.token_hex(8)}.json")
        _settings.CONFIG_PATHS = [self.config_file]

        if conf.DATABASE_URL is not None:
            self.database_url = conf.DATABASE_URL
            if conf.COMMAND_INITIALIZE_DATABASE:
                subprocess.run(conf.COMMAND_INITIALIZE_DATABASE)

        else:
            self._database_file = conf.DATABASE_DEFAULT_FILE_FORMAT.format(
                os.getpid(),
                "".join([random.choice(string.ascii_lowercase) for _ in range(6)])
            )

            try:
                open(self._database_file, "wb").close()
                os.remove(self._database_file)
                self.database_url = conf.DATABASE_URL_FORMAT.format(self._database_file)

            except OSError as exc:
                self.database_url = conf.DATABASE_FALLBACK_URL
                self._database_file = None
                print(
                    f"{exc}: Falling back to in-memory database. This is not recommended!",
                    file=sys.stderr
                )

        if self.database_url.startswith("sqlite"):
            self.database_type = DatabaseType.SQLITE
        elif self.database_url.startswith("mysql"):
            self.database_type = DatabaseType.MYSQL
        elif self.database_url.startswith("postgresql"):
            self.database_type = DatabaseType.POSTGRES
        else:
            print(
                f"Unknown scheme in URL {self.database_url!r}. Unittests may fail later.",
                file=sys.stderr
            )

        self.write_config()

    def tearDown(self) -> None:
        if conf.DATABASE_URL is not None and conf.COMMAND_CLEANUP_DATABASE:
            subprocess.run(conf.COMMAND_CLEANUP_DATABASE)

        elif self.database_url != conf.DATABASE_FALLBACK_URL and self._database_file:
            if os.path.exists(self._database_file):
                os.remove(self._database_file)

        if self.config_file and os.path.exists(self.config_file):
            os.remove(self.config_file)

    def get_config(self) -> _config.CoreConfig:
        config = _settings.get_default_core_config(self.database_url)
        if conf.SERVER_LOGGING_OVERWRITE:
            config.logging = _config.LoggingConfig(**conf.SERVER_LOGGING_OVERWRITE)
        config.database.debug_sql = conf.SQLALCHEMY_ECHOING
        config.server.token_secret = conf.TOKEN_SECRET
        config.server.allow_weak_insecure_password_hashes = True
        return config

    def write_config(self) -> _config.CoreConfig:
        config = self.get_config()
        with open(self.config_file, "w") as f:
            f.write(config.model_dump_json())
        return config


class BasePersistenceTests(BaseTest):
    engine: _Engine
    session: sqlalchemy.orm.Session

    def setUp(self) -> None:
        super().setUp()
        self.engine = database.make_engine(self.database_url, conf.SQLALCHEMY_ECHOING)
        self.session = sqlalchemy.orm.sessionmaker(autoflush=False, bind=self.engine)()
        models.Base.metadata.create_all(bind=self.engine)

    def tearDown(self) -> None:
        self.session.close()
        self.engine.dispose()
        super().tearDown()

    def get_sample_users(self) -> List[models.User]:
        server_config = self.get_config().server
        return [
            models.User(email=f"user{i}@example.com", password=auth.hash_password(f"password{i}", server_config),
                        display_name=f"User {i}")
            for i in range(1, 4)
        ]


class BaseAPITests(BaseTest):
    server_port: Optional[int] = None
    server_process: Optional[subprocess.Popen] = None

    token: Optional[str] = None

    @property
    def server(self) -> str:
        return f"http://127.0.0.1:{self.server_port}/"

    def assertQuery(
            self,
            endpoint: Tuple[str, str],
            status_code: Union[int, Iterable[int]] = 200,
            json: Optional[Union[dict, pydantic.BaseModel]] = None,
            headers: Optional[dict] = None,
            token: Optional[str] = None,
            no_auth: bool = False,
            r_none: bool = False,
            r_is_json: bool = True,
            r_headers: Optional[Union[Mapping, Iterable]] = None,
            r_schema: Optional[Type[pydantic.BaseModel]] = None,
            **kwargs
    ) -> requests.Response:
        """
        Do a query to the specified endpoint and return the response

        Besides also carrying the optional JSON data, headers and other keyword arguments,
        this function asserts that the response has the specified status code. Furthermore,
        the optional asserted response headers and asserted response schema can be used,
        where the headers are either an iterable to only assert certain keys or a mapping
        to also assert values, and the schema is a schema class the response must satisfy.

        :param endpoint: tuple of the method and the path of the endpoint
        :param status_code: asserted status code(s) of the final server's response
        :param json: optional dictionary or model holding the request data
        :param headers: optional set of headers to sent in the request
        :param token: optional bearer token to use instead of the token of the last login
        :param no_auth: switch to send no ``Authorization`` header at all
        :param r_none: switch to expect no (=empty) result and skip all other response content checks
        :param r_is_json: switch to check that the response contains JSON data
        :param r_headers optional set of headers which are asserted in the response
        :param r_schema: optional class of a response schema to be asserted
        :param kwargs: dict of any further keyword arguments, passed to ``requests.request``
        :return: response to the requested resource
        """

        method, path = endpoint
        if path.startswith("/"):
            path = path[1:]
        if isinstance(json, pydantic.BaseModel):
            json = json.model_dump()

        headers = headers or {}
        if not no_auth and "Authorization" not in headers:
            headers["Authorization"] = f"Bearer {token or self.token}"
        response = requests.request(method.upper(), self.server + path, json=json, headers=headers, **kwargs)

        if isinstance(status_code, int):
            self.assertEqual(status_code, response.status_code, response.text)
        elif isinstance(status_code, Iterable):
            self.assertTrue(
                response.status_code in status_code,
                (response.text, response.status_code, status_code)
            )

        if r_headers is not None:
            for k in (r_headers if isinstance(r_headers, Iterable) else r_headers.keys()):
                self.assertIsNotNone(response.headers.get(k), response.headers)
                if isinstance(r_headers, Mapping):
                    self.assertEqual(r_headers[k], response.headers.get(k), response.headers)

        if r_none:
            self.assertEqual("", response.text)

        elif r_is_json:
            try:
                self.assertIsNotNone(response.json())
            except ValueError:
                self.fail(("No JSON content detected", response.headers, response.text))
            if r_schema is not None:
                self.assertTrue(r_schema(**response.json()), response.json())

        return response

    def register(
            self,
            email: str = "user@example.com",
            password: str = "password123",
            display_name: str = "User"
    ) -> requests.Response:
        return self.assertQuery(
            ("POST", "/auth/register"),
            204,
            json={"email": email, "password": password, "confirmPassword": password, "display_name": display_name},
            no_auth=True,
            r_none=True
        )

    def login(self, email: str = "user@example.com", password: str = "password123") -> str:
        response = requests.post(self.server + "auth/login", json={"email": email, "password": password})
        if not response.ok:
            self.fail(f"Failed to login ({response.status_code}): {response.text}")
        self.token = response.json()["token"]
        return self.token

    def make_user(
            self,
            email: str = "user@example.com",
            password: str = "password123",
            display_name: str = "User"
    ) -> str:
        self.register(email, password, display_name)
        return self.login(email, password)

    def get_db_session(self) -> sqlalchemy.orm.Session:
        engine = database.make_engine(self.database_url, conf.SQLALCHEMY_ECHOING)
        return sqlalchemy.orm.sessionmaker(autoflush=False, bind=engine)()

    def _start_api_server(self):
        def _mk_args(port: int) -> list:
            return [
                sys.executable, "-m", "todo_core", "run", "--port", str(port),
                "--config", self.config_file, "--host", "127.0.0.1", "--no-access-log"
            ]

        self.server_port = random.randint(10000, 20000)

        for i in range(conf.MAX_SERVER_START_RETRIES):
            self.server_process = subprocess.Popen(
                _mk_args(self.server_port),
                stderr=subprocess.PIPE,
                stdout=subprocess.PIPE,
                start_new_session=True
            )

            for j in range(conf.MAX_SERVER_WAIT_RETRIES):
                try:
                    self.server_process.wait(conf.API_SUBPROCESS_START_WAIT_TIMEOUT)
                except subprocess.TimeoutExpired:
                    pass
                else:
                    self._quit_api_server()
                    self.server_port += 1
                    break

                try:
                    requests.get(self.server + "health")
                    return
                except requests.exceptions.ConnectionError:
                    pass

            else:
                if self.server_process.poll() is not None:
                    self._quit_api_server()
                    self.server_port += 1

        self.server_process.terminate()
        outs, errs = self.server_process.communicate()
        return_code = self.server_process.poll()
        self._quit_api_server()
        self.fail(
            f"Failed to successfully start the API server after {conf.MAX_SERVER_START_RETRIES} "
            f"tries. Server process returned code {return_code}.\n"
            f"{' STDERR '.center(80, '=')}\n{errs.decode('UTF-8')}\n"
            f"{' STDOUT '.center(80, '=')}\n{outs.decode('UTF-8')}"
        )

    def _quit_api_server(self):
        if self.server_process is None:
            return
        self.server_process.terminate()
        try:
            self.server_process.wait(conf.API_SUBPROCESS_TERMINATE_TIMEOUT)
        except subprocess.TimeoutExpired:
            pass
        self.server_process.kill()
        try:
            self.server_process.wait(conf.API_SUBPROCESS_KILL_TIMEOUT)
        except subprocess.TimeoutExpired:
            pass
        self.server_process.stdout.close()
        self.server_process.stderr.close()

    def setUp(self) -> None:
        super().setUp()
        self.token = None
        self._start_api_server()

    def tearDown(self) -> None:
        self._quit_api_server()
        super().tearDown()

    @classmethod
    def setUpClass(cls) -> None:
        super().setUpClass()
        p = subprocess.run(
            [sys.executable, "-m", "todo_core", "run", "-h"],
            stderr=subprocess.PIPE,
            stdout=subprocess.PIPE,
            start_new_session=True
        )
        if p.returncode != 0:
            raise RuntimeError("Executing the 'todo_core' module from the current Python interpreter failed!")
