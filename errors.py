class PokemedError(Exception):
    """Base class for every failure reported to the shell."""


class ValidationError(PokemedError):

    @classmethod
    def from_pydantic(cls, error):
        message = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
        )
        return cls(message)


class DuplicateError(PokemedError):
    pass


class DuplicateUsernameError(DuplicateError):
    def __init__(self, username):
        super().__init__(f"Username '{username}' is already registered")
        self.username = username


class AvatarExistsError(DuplicateError):
    def __init__(self, user_id):
        super().__init__("User already has an avatar. Cannot create a new one.")
        self.user_id = user_id


class StoreFailure(PokemedError):
    pass


class NotFoundError(PokemedError):
    pass


class AuthenticationError(PokemedError):
    def __init__(self):
        super().__init__("Incorrect username or password")


class PermissionDeniedError(PokemedError):
    pass
