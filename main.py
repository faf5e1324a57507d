import argparse
import getpass
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from auth_service import AuthService, build_password_context
from avatar_service import AvatarService
from config import Settings, get_settings
from errors import NotFoundError, PokemedError
from progress_service import NO_AVATAR_LEVEL, ProgressService, experience_to_next_level
from schemas import AccountSummary
from stores import AccountStore, AvatarStore, ProgressStore
from user_db import create_db_engine, create_session_factory, init_db

logger = logging.getLogger(__name__)

DEFAULT_AVATAR_NAME = "Warrior"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"


@dataclass
class UserSession:
    """The account logged in to one shell session."""
    account: Optional[AccountSummary] = None

    @property
    def logged_in(self) -> bool:
        return self.account is not None

    @property
    def is_admin(self) -> bool:
        return self.logged_in and self.account.role == "admin"


@dataclass
class Services:
    auth: AuthService
    avatars: AvatarService
    progress: ProgressService


def build_services(settings: Settings) -> Services:
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    session_factory = create_session_factory(engine)

    avatars = AvatarService(AvatarStore(session_factory), art_dir=settings.ascii_art_dir)
    return Services(
        auth=AuthService(AccountStore(session_factory), build_password_context(settings.bcrypt_rounds)),
        avatars=avatars,
        progress=ProgressService(ProgressStore(session_factory), avatars),
    )


class Shell:
    """Numbered-menu front end over the auth, avatar and progress services."""

    def __init__(self, services: Services, input_func=input, password_func=getpass.getpass, output=None):
        self.services = services
        self.input_func = input_func
        self.password_func = password_func
        self.output = output or sys.stdout
        self.session = UserSession()

    def say(self, message: str = ""):
        print(message, file=self.output)

    def prompt(self, message: str) -> str:
        return self.input_func(message).strip()

    def prompt_int(self, message: str) -> int:
        while True:
            raw = self.prompt(message)
            try:
                return int(raw)
            except ValueError:
                self.say("Invalid input. Please enter a number.")

    def run(self):
        self.say("Welcome to PokeMed Quest!")
        running = True
        while running:
            try:
                if not self.session.logged_in:
                    running = self.main_menu()
                elif self.session.is_admin:
                    self.admin_menu()
                else:
                    self.child_menu()
            except EOFError:
                running = False
            self.say()
        self.say("Exiting PokeMed Quest session.")

    def _perform(self, action):
        try:
            action()
        except PokemedError as e:
            self.say(f"Error: {e}")

    # Menus

    def main_menu(self) -> bool:
        self.say("--- Main Menu ---")
        self.say("1. Login")
        self.say("2. Register")
        self.say("0. Exit")
        choice = self.prompt_int("Enter choice: ")
        if choice == 1:
            self._perform(self.handle_login)
        elif choice == 2:
            self._perform(self.handle_register)
        elif choice == 0:
            return False
        else:
            self.say("Invalid choice. Please try again.")
        return True

    def child_menu(self):
        account = self.session.account
        self.say(f"--- Logged in as: {account.username} ({account.role}) ---")
        self.say("1. View My Avatar")
        self.say("2. Customize Avatar")
        self.say("3. Record CMAS Score")
        self.say("4. View My Progress History")
        self.say("5. View My Progress Trends")
        self.say("0. Logout")
        actions = {
            1: self.handle_view_avatar,
            2: self.handle_customize_avatar,
            3: self.handle_record_progress,
            4: self.handle_view_history,
            5: self.handle_view_trends,
            0: self.handle_logout,
        }
        self._choose(actions)

    def admin_menu(self):
        account = self.session.account
        self.say(f"--- Logged in as: {account.username} ({account.role}) ---")
        self.say("1. View Patient Progress")
        self.say("2. Delete User Account")
        self.say("3. List All Users")
        self.say("4. View All Avatars")
        self.say("5. View All Progress Records")
        self.say("0. Logout")
        actions = {
            1: self.handle_view_patient,
            2: self.handle_delete_user,
            3: self.handle_list_users,
            4: self.handle_list_avatars,
            5: self.handle_list_progress,
            0: self.handle_logout,
        }
        self._choose(actions)

    def _choose(self, actions):
        choice = self.prompt_int("Enter choice: ")
        action = actions.get(choice)
        if action is None:
            self.say("Invalid choice.")
            return
        self._perform(action)

    # Account handlers

    def handle_register(self):
        self.say("--- Register New User ---")
        username = self.prompt("Enter username: ")
        password = self.password_func("Enter password: ")
        role = self.prompt("Enter role (child/admin): ").lower()
        if role not in ("child", "admin"):
            self.say("Invalid role. Defaulting to 'child'.")
            role = "child"

        account = self.services.auth.register(username, password, role)
        if account.role == "child":
            name = self.prompt("Enter a name for your new avatar: ") or DEFAULT_AVATAR_NAME
            try:
                self.services.avatars.create_default_avatar(account, name)
            except PokemedError:
                self.services.auth.delete_account(account.username)
                raise
            self.say(f"Default avatar '{name}' created!")
        self.say(f"Registration successful for user: {account.username}")

    def handle_login(self):
        self.say("--- Login ---")
        username = self.prompt("Enter username: ")
        password = self.password_func("Enter password: ")
        self.session.account = self.services.auth.login(username, password).summary()
        self.say(f"Login successful! Welcome, {username}!")

    def handle_logout(self):
        self.say(f"Logging out {self.session.account.username}...")
        self.session = UserSession()

    # Child handlers

    def handle_view_avatar(self):
        avatar = self.services.avatars.get(self.session.account.id)
        if avatar is None:
            self.say("You don't seem to have an avatar yet.")
            return
        self.say("--- Your Avatar ---")
        self.say(self.services.avatars.render(avatar))
        self.say(f"Name: {avatar.name}  Color: {avatar.color}  Accessory: {avatar.accessory}")
        self.say(
            f"Level {avatar.level} | XP {avatar.total_experience} "
            f"({experience_to_next_level(avatar.total_experience)} to next level)"
        )

    def handle_customize_avatar(self):
        self.say("--- Customize Avatar ---")
        user_id = self.session.account.id
        avatar = self.services.avatars.get(user_id)
        if avatar is None:
            self.say("You need an avatar first!")
            return
        name = self.prompt(f"Enter new avatar name ({avatar.name}): ") or avatar.name
        color = self.prompt(f"Enter new color ({avatar.color}): ") or avatar.color
        accessory = self.prompt(f"Enter new accessory ({avatar.accessory}): ") or avatar.accessory
        if self.services.avatars.customize(user_id, name, color, accessory):
            self.say("Avatar updated successfully!")
        else:
            self.say("Failed to update avatar.")

    def handle_record_progress(self):
        self.say("--- Record CMAS Score ---")
        score = self.prompt_int("Enter the CMAS score achieved: ")
        user_id = self.session.account.id
        result = self.services.progress.record_test_result(user_id, score)
        self.say("Progress recorded successfully!")
        if result.new_level == NO_AVATAR_LEVEL:
            self.say("No avatar found, so no experience was gained.")
        elif result.leveled_up:
            self.say(f"LEVEL UP! Your avatar reached level {result.new_level}!")
        else:
            self.say(f"+{result.gained_experience} XP. Your avatar is level {result.new_level}.")

    def handle_view_history(self):
        self.say("--- Your Progress History ---")
        self._print_history(self.services.progress.get_progress_history(self.session.account.id))

    def handle_view_trends(self):
        self.say("--- Your Progress Trends ---")
        for line in self.services.progress.detect_anomalies(self.session.account.id):
            self.say(line)

    def _print_history(self, history):
        if not history:
            self.say("No progress history found.")
            return
        self.say("Date & Time        | Score")
        self.say("-------------------|-------")
        for record in history:
            self.say(f"{record.test_timestamp.strftime(TIMESTAMP_FORMAT):<19}| {record.cmas_score}")
        self.say("---------------------------")

    # Admin handlers

    def handle_view_patient(self):
        username = self.prompt("Enter patient username: ")
        account = self.services.auth.get_account(username)
        if account is None:
            raise NotFoundError(f"No user named '{username}'.")
        self.say(f"--- Progress for {account.username} ---")
        avatar = self.services.avatars.get(account.id)
        if avatar is not None:
            self.say(f"Avatar {avatar.name}: level {avatar.level}, {avatar.total_experience} XP")
        self._print_history(self.services.progress.get_progress_history(account.id))
        for line in self.services.progress.detect_anomalies(account.id):
            self.say(line)

    def handle_delete_user(self):
        username = self.prompt("Enter username to delete: ")
        if self.services.auth.delete_account(username, requested_by=self.session.account):
            self.say(f"User '{username}' deleted.")
        else:
            self.say(f"Could not delete user '{username}'.")

    def handle_list_users(self):
        self.say("--- All Users ---")
        for account in self.services.auth.list_accounts():
            self.say(f"{account.id:>4} | {account.username:<20} | {account.role}")

    def handle_list_avatars(self):
        self.say("--- All Avatars ---")
        for avatar in self.services.avatars.list_avatars():
            self.say(
                f"user {avatar.user_id:>4} | {avatar.name:<15} | {avatar.color:<7} | "
                f"{avatar.accessory:<10} | level {avatar.level} | {avatar.total_experience} XP"
            )

    def handle_list_progress(self):
        self.say("--- All Progress Records ---")
        for record in self.services.progress.get_all_progress_records():
            self.say(
                f"user {record.user_id:>4} | "
                f"{record.test_timestamp.strftime(TIMESTAMP_FORMAT)} | {record.cmas_score}"
            )


def configure_logging(settings: Settings):
    log_file = Path(settings.log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.FileHandler(log_file)],
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="PokeMed Quest - track CMAS scores with a levelling avatar")
    parser.add_argument("--database-url", help="SQLAlchemy database URL")
    parser.add_argument("--log-level", help="Operator log level (DEBUG, INFO, ...)")
    parser.add_argument("--log-file", help="Operator log file")
    parser.add_argument("--ascii-art-dir", help="Directory holding avatar art")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    settings = get_settings().override(
        database_url=args.database_url,
        log_level=args.log_level,
        log_file=args.log_file,
        ascii_art_dir=args.ascii_art_dir,
    )
    configure_logging(settings)

    try:
        services = build_services(settings)
    except SQLAlchemyError as e:
        logger.exception("Database initialisation failed")
        print(f"Could not start: {e}", file=sys.stderr)
        return 1
    try:
        Shell(services).run()
    except KeyboardInterrupt:
        print("\nExiting PokeMed Quest session.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
