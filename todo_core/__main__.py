#!/usr/bin/env python3

import os
import sys
import json
import getpass
import argparse
import logging
from typing import List, Optional
from collections import OrderedDict

import uvicorn
import sqlalchemy.exc

from todo_core import settings as _settings
from todo_core.api.api import create_app
from todo_core.persistence import database, models


def get_parser(program: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=program)

    commands = parser.add_subparsers(
        description="Available sub-commands: init, users*, run, systemd",
        dest="command",
        required=True,
        metavar="<command>",
        help="the sub-command to be executed (some have their own subcommands, too)"
    )

    parser_init = commands.add_parser(
        "init",
        description="Initialize the project by creating the config file and the database tables"
    )

    parser_users = commands.add_parser(
        "users",
        description="Manage registered user accounts"
    )
    user_command = parser_users.add_subparsers(
        description="Available actions: show, del",
        dest="action",
        metavar="<action>",
        required=True,
        help="action to perform for users"
    )
    parser_users_show = user_command.add_parser(
        "show",
        description="Show a list of all users"
    )
    parser_users_del = user_command.add_parser(
        "del",
        description="Delete an existing user account together with all its tasks"
    )

    parser_run = commands.add_parser(
        "run",
        description="Run 'uvicorn' ASGI server to serve the Todo core REST API"
    )

    parser_systemd = commands.add_parser(
        "systemd",
        description="Create a systemd unit file to run the Todo core REST API as system service"
    )

    parser_init.add_argument(
        "--database",
        type=str,
        metavar="url",
        help="Database connection URL including scheme and auth"
    )

    for p in (parser_init, parser_users_show, parser_users_del):
        p.add_argument(
            "--config",
            type=str,
            metavar="config",
            help="Overwrite the config file (defaults to 'config.json')"
        )

    parser_users_show.add_argument(
        "--json",
        action="store_true",
        help="Print the result in JSON format instead of human-readable text"
    )
    parser_users_show.add_argument(
        "--indent",
        type=int,
        metavar="n",
        help="(JSON-only) Indent the JSON response with n spaces (default: none)"
    )

    parser_users_del.add_argument(
        "user",
        metavar="email/ID",
        help="email address or ID of the user that should be deleted"
    )

    parser_run.add_argument(
        "--host",
        type=str,
        metavar="host",
        help="Bind TCP socket to this host (overwrite config)"
    )
    parser_run.add_argument(
        "--port",
        type=int,
        metavar="port",
        help="Bind TCP socket to this port (overwrite config)"
    )
    parser_run.add_argument(
        "--config",
        type=str,
        metavar="config",
        default="config.json",
        help="Overwrite the config file (defaults to 'config.json')"
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable full debug mode including debug logs (probably insecure)"
    )
    parser_run.add_argument(
        "--debug-sql",
        action="store_true",
        help="Enable echoing of database actions (overwrites config)"
    )
    parser_run.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload"
    )
    parser_run.add_argument(
        "--workers",
        type=int,
        default=None,
        metavar="n",
        help="Number of worker processes (not valid with --reload)",
    )
    parser_run.add_argument(
        "--no-access-log",
        action="store_true",
        help="Disable access logs"
    )
    parser_run.add_argument(
        "--use-colors",
        action="store_true",
        help="Enable colorized output (may break file logs!)"
    )
    parser_run.add_argument(
        "--root-path",
        type=str,
        default="",
        metavar="p",
        help="Sub-mount the application below the given path"
    )

    parser_systemd.add_argument(
        "--force",
        action="store_true",
        help="Allow overwriting existing files"
    )
    parser_systemd.add_argument(
        "--path",
        type=str,
        default=os.path.join(os.path.abspath("."), "todo_core.service"),
        metavar="p",
        help="Path to the newly created systemd file"
    )

    return parser


def _use_config(args: argparse.Namespace):
    if getattr(args, "config", None):
        _settings.CONFIG_PATHS.insert(0, args.config)


def handle_systemd(args: argparse.Namespace) -> int:
    python_executable = sys.executable
    if sys.executable is None or sys.executable == "":
        python_executable = "python3"
        print(
            "Revise the 'ExecStart' parameter, since the Python "
            "interpreter path could not be determined reliably.",
            file=sys.stderr
        )

    content = f"""[Unit]
Description=Todo core REST API server
After=network-online.target
Wants=network-online.target

[Service]
Type=simple
ExecStart={python_executable} -m todo_core run
User={getpass.getuser()}
WorkingDirectory={os.path.abspath(".")}
Restart=always
SyslogIdentifier=todo_core

[Install]
WantedBy=multi-user.target
"""

    if os.path.exists(args.path) and not args.force:
        print(f"File {args.path!r} already exists. Aborting!", file=sys.stderr)
        return 1

    with open(args.path, "w") as f:
        f.write(content)

    print(
        f"Successfully created the new file {args.path!r}. Now, create a "
        f"symlink from /lib/systemd/system/ to that file. Then use 'systemctl "
        f"daemon-reload' and enable your new service. Check that it works afterwards."
    )

    return 0


def run_server(args: argparse.Namespace) -> int:
    if args.debug:
        print("Do not start the server this way during production!", file=sys.stderr)

    _use_config(args)
    try:
        settings = _settings.Settings()
    except ValueError:
        print("Ensure that the configuration file is valid. Please correct any errors.", file=sys.stderr)
        raise

    if args.debug:
        settings.logging.root["level"] = "DEBUG"
        for handler in settings.logging.handlers:
            settings.logging.handlers[handler]["level"] = "DEBUG"
    if args.debug_sql:
        settings.database.debug_sql = args.debug_sql

    port = args.port
    if port is None:
        port = settings.server.port
    host = args.host
    if host is None:
        host = settings.server.host

    app = create_app(settings=settings)

    logging.getLogger("todo_core").info(f"Server running at host {host} port {port}")
    uvicorn.run(
        "todo_core.api:api.app" if args.reload else app,
        port=port,
        host=host,
        reload=args.reload,
        workers=args.workers,
        log_level="debug" if args.debug else "info",
        log_config=settings.logging.model_dump(),
        access_log=not args.no_access_log,
        use_colors=args.use_colors,
        proxy_headers=True,
        root_path=args.root_path
    )
    return 0


def init_project(args: argparse.Namespace) -> int:
    _use_config(args)
    if _settings.find_config_file() is None:
        conf = _settings.get_default_core_config(_settings.get_db_from_env(args.database))
        _settings.store_configuration(conf)
        print(f"A new config file has been created as {os.path.abspath(_settings.CONFIG_PATHS[0])!r}.")
    elif args.database:
        print(
            "A config file has been found and will be used. If you want to use another database, "
            "change the connection in the config file instead.",
            file=sys.stderr
        )

    settings = _settings.Settings()
    database.init(settings.database.connection, settings.database.debug_sql)
    try:
        with database.get_new_session() as session:
            session.query(models.User).count()
    except sqlalchemy.exc.DatabaseError:
        print("The database tables couldn't be created. Please check the database connection.", file=sys.stderr)
        return 1

    print("Done.")
    return 0


def print_table(objs: List[dict], keys: Optional[List[str]] = None):
    info = OrderedDict()
    if keys:
        for k in keys:
            info[k] = len(k)
    for obj in objs:
        for key in obj:
            if keys and key not in keys:
                continue
            if key not in info:
                info[key] = len(key)
            info[key] = max(len(str(obj.get(key))), info.get(key))
    print(" | ".join([f"{k:<{info[k]}}" for k in info]))
    print("-+-".join(["-" * info[k] for k in info]))
    for obj in objs:
        print(" | ".join([f"{obj[k]!s:<{info[k]}}" for k in info]))


def show_users(args: argparse.Namespace) -> int:
    def _conv(user: models.User) -> dict:
        d = user.schema.model_dump(mode="json")
        d["tasks"] = len(user.tasks)
        return d

    _use_config(args)
    config = _settings.Settings()
    database.init(config.database.connection, config.database.debug_sql)
    with database.get_new_session() as session:
        users = session.query(models.User).order_by(models.User.id).all()

        if args.json:
            print(json.dumps([user.schema.model_dump(mode="json") for user in users], indent=args.indent))
            return 0
        print_table([_conv(user) for user in users], ["id", "email", "display_name", "tasks", "createdAt"])
    return 0


def del_user(args: argparse.Namespace) -> int:
    _use_config(args)
    config = _settings.Settings()
    database.init(config.database.connection, config.database.debug_sql)
    with database.get_new_session() as session:
        try:
            user = session.get(models.User, int(args.user))
        except ValueError:
            user = session.query(models.User).filter_by(email=args.user).first()
        if user is None:
            print(f"There's no user {args.user!r} in the database!", file=sys.stderr)
            return 1

        count = len(user.tasks)
        email, user_id = user.email, user.id
        session.delete(user)
        session.commit()
        print(
            f"Successfully deleted user {email!r} (ID {user_id}) and {count} task(s). Tokens "
            f"issued for this user are rejected from now on."
        )
    return 0


def handle_users(args: argparse.Namespace) -> int:
    return {
        "show": show_users,
        "del": del_user
    }[args.action](args)


if __name__ == '__main__':
    program_name = sys.argv[0] if not sys.argv[0].endswith("__main__.py") else "todo_core"
    namespace = get_parser(program_name).parse_args(sys.argv[1:])

    command_functions = {
        "run": run_server,
        "init": init_project,
        "users": handle_users,
        "systemd": handle_systemd
    }
    exit(command_functions[namespace.command](namespace))
