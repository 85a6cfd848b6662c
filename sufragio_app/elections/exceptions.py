from __future__ import annotations


class ElectionError(Exception):
    pass


class UnauthorizedError(ElectionError):
    pass


class NotFoundError(ElectionError):
    pass


class UserNotFoundError(NotFoundError):
    pass


class ElectionNotFoundError(NotFoundError):
    pass


class MembershipNotFoundError(NotFoundError):
    pass


class InvalidStateError(ElectionError):
    pass


class ElectionLockedError(InvalidStateError):
    pass


class ElectionNotOpenError(InvalidStateError):
    pass


class ElectionNotClosedError(InvalidStateError):
    pass


class InsufficientCandidatesError(InvalidStateError):
    pass


class ElectionNotAcceptingRegistrationsError(InvalidStateError):
    pass


class InvalidTransitionError(InvalidStateError):
    pass


class CandidateNotApprovedError(InvalidStateError):
    pass


class ElectionStillOpenForParticipationDetailError(InvalidStateError):
    pass


class ConflictError(ElectionError):
    pass


class DuplicateMembershipError(ConflictError):
    pass


class AlreadyVotedError(ConflictError):
    pass


class AlreadyRegisteredError(ConflictError):
    pass


class InvalidElectionNameError(ElectionError):
    pass


class InvalidScheduleError(ElectionError):
    pass


class InvalidRoleAssignmentError(ElectionError):
    pass


class InvalidGatewayReferenceError(ElectionError):
    pass
