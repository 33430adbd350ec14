class TournamentError(Exception):
    """Base class for tournament rule violations; ``status_code`` is the HTTP answer."""
    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    default_message = "Tournament error"


class NotJoinable(TournamentError):
    default_message = "Tournament is not open for registration"


class AlreadyJoined(TournamentError):
    status_code = 409
    default_message = "Already joined"


class AlreadyFinalized(TournamentError):
    default_message = "Already finalized"


class InvalidDistribution(TournamentError):
    default_message = "Prize distribution not configured"
