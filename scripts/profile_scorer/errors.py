#------------------------------------------------------------
#                          errors.py
#     Exception types raised by the platform clients and
#                 the analysis pipeline.


class ProfileScorerError(Exception):
    pass

class ValidationError(ProfileScorerError):
    pass

class NotFoundError(ProfileScorerError):
    pass

class RateLimitError(ProfileScorerError):
    pass

class AuthenticationError(ProfileScorerError):
    pass

class ServiceUnavailableError(ProfileScorerError):
    pass

class ApiError(ProfileScorerError):
    pass

class NetworkError(ProfileScorerError):
    pass

class CircuitOpenError(ProfileScorerError):
    pass

class AnalysisError(ProfileScorerError):
    pass

class ScoringError(ProfileScorerError):
    pass
