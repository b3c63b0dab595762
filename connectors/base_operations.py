from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


ActionResult = Dict[str, Any]


class BaseOperations(ABC):
    """Base class for all collaborator operation sets

    Every operation is async and returns an action result:
        {'success': bool, 'message': str, 'data': {...}?, 'error': str?}
    """

    def __init__(self):
        self.name = self.__class__.__name__
        self.initialized = False

    async def initialize(self):
        """
        Connect to the backing service.
        Override if needed.
        """
        self.initialized = True

    async def cleanup(self):
        """
        Release resources (disconnect from services, etc.)
        Override if needed.
        """
        pass

    def _ok(self, message: str, **data: Any) -> ActionResult:
        result: ActionResult = {'success': True, 'message': message}
        if data:
            result['data'] = data
        return result

    def _fail(self, message: str, error: Optional[str] = None) -> ActionResult:
        return {'success': False, 'message': message, 'error': error or message}


class BugOperations(BaseOperations):
    """Bug CRUD and queries"""

    @abstractmethod
    async def list(self, user_id: str, filters: Dict[str, Any], options: Dict[str, Any]) -> ActionResult:
        """
        List bugs visible to a user.

        Args:
            user_id: Caller
            filters: status, priority, component, team_id, assigned_to_me,
                     created_by_me, unassigned, assigned_to, start_date
            options: limit, sort, include_analytics
        """

    @abstractmethod
    async def create(self, data: Dict[str, Any], user_id: str) -> ActionResult:
        pass

    @abstractmethod
    async def details(self, user_id: str, bug_id: str) -> ActionResult:
        pass

    @abstractmethod
    async def update_status(self, bug_id: str, status: str, user_id: str) -> ActionResult:
        pass

    @abstractmethod
    async def assign(self, bug_id: str, user_ids: List[str], performer_id: str) -> ActionResult:
        pass

    @abstractmethod
    async def delete(self, bug_id: str, user_id: str) -> ActionResult:
        pass

    @abstractmethod
    async def search(self, user_id: str, text: str) -> ActionResult:
        pass

    @abstractmethod
    async def stats(self, user_id: str) -> ActionResult:
        pass


class TeamOperations(BaseOperations):
    """Team CRUD and membership"""

    @abstractmethod
    async def list_for_user(self, user_id: str) -> ActionResult:
        pass

    @abstractmethod
    async def create(self, data: Dict[str, Any], user_id: str) -> ActionResult:
        pass

    @abstractmethod
    async def details(self, user_id: str, team_id: str) -> ActionResult:
        pass

    @abstractmethod
    async def add_member(self, team_id: str, identifier: str, role: str, performer_id: str) -> ActionResult:
        pass

    @abstractmethod
    async def search(self, user_id: str, text: str) -> ActionResult:
        pass

    @abstractmethod
    async def stats(self, user_id: str) -> ActionResult:
        pass


class UserOperations(BaseOperations):
    """User lookups"""

    @abstractmethod
    async def search(self, user_id: str, text: str, filters: Dict[str, Any]) -> ActionResult:
        pass

    @abstractmethod
    async def profile(self, user_id: str, target_id: str) -> ActionResult:
        pass

    @abstractmethod
    async def team_members(self, user_id: str, team_id: str) -> ActionResult:
        pass


class CommentOperations(BaseOperations):
    """Comments scoped to a bug"""

    @abstractmethod
    async def list(self, user_id: str, bug_id: str) -> ActionResult:
        pass

    @abstractmethod
    async def create(self, user_id: str, bug_id: str, data: Dict[str, Any]) -> ActionResult:
        pass

    @abstractmethod
    async def search(self, user_id: str, text: str) -> ActionResult:
        pass


class FileOperations(BaseOperations):
    """File attachments scoped to a bug"""

    @abstractmethod
    async def list(self, user_id: str, bug_id: str) -> ActionResult:
        pass

    @abstractmethod
    async def create(self, user_id: str, bug_id: str, data: Dict[str, Any]) -> ActionResult:
        pass

    @abstractmethod
    async def search(self, user_id: str, text: str, filters: Dict[str, Any]) -> ActionResult:
        pass


@dataclass
class Collaborators:
    """The operation sets the interpreter dispatches to"""
    bugs: BugOperations
    teams: TeamOperations
    users: UserOperations
    comments: CommentOperations
    files: FileOperations

    def all(self) -> List[BaseOperations]:
        return [self.bugs, self.teams, self.users, self.comments, self.files]

    async def initialize(self):
        for operations in self.all():
            await operations.initialize()

    async def cleanup(self):
        for operations in self.all():
            await operations.cleanup()
