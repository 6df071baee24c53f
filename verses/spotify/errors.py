class SpotifyError(RuntimeError):
    pass


class PlayerUnavailable(SpotifyError):
    pass


class AuthorizationError(SpotifyError):
    pass


class CallbackError(AuthorizationError):
    pass
