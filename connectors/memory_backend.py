"""
In-Memory Collaborator Backend

Reference implementation of every collaborator contract, backed by plain
dictionaries. Used by the terminal demo and the test suite; a production
deployment swaps in operations backed by its document store.

Author: AI System
Version: 1.0
"""

import copy
import itertools
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from logger import get_logger
from .base_operations import (
    ActionResult,
    BugOperations,
    Collaborators,
    CommentOperations,
    FileOperations,
    TeamOperations,
    UserOperations,
)

logger = get_logger(__name__)

BUG_STATUSES = ('open', 'in-progress', 'resolved', 'closed')
PRIORITY_RANK = {'critical': 0, 'high': 1, 'medium': 2, 'low': 3}
TEAM_ROLES = ('admin', 'member', 'owner', 'manager', 'developer', 'tester', 'viewer', 'designer')


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def match_rank(user: Dict[str, Any], needle: str) -> Optional[int]:
    """How well a user matches a lookup: 0 exact, 1 whole word, 2 substring, None no match."""
    if not needle:
        return 2
    name = user['name'].lower()
    email = user['email'].lower()
    if needle in (name, email, str(user['id']).lower()):
        return 0
    if needle in name.split() or needle == email.split('@')[0]:
        return 1
    if needle in name or needle in email:
        return 2
    return None


def calculate_bug_analytics(bugs: List[Dict[str, Any]], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Status/priority breakdown, assignment split, completion rate, average age."""
    now = now or datetime.now()
    total = len(bugs)
    by_status = Counter(bug.get('status', 'open') for bug in bugs)
    by_priority = Counter(bug.get('priority', 'medium') for bug in bugs)
    unassigned = sum(1 for bug in bugs if not bug.get('assigned_to'))
    done = by_status.get('resolved', 0) + by_status.get('closed', 0)

    ages = [
        (now - bug['created_at']).total_seconds() / 86400
        for bug in bugs if isinstance(bug.get('created_at'), datetime)
    ]

    return {
        'total': total,
        'by_status': dict(by_status),
        'by_priority': dict(by_priority),
        'assigned': total - unassigned,
        'unassigned': unassigned,
        'completion_rate': round(done / total * 100, 1) if total else 0.0,
        'average_age_days': round(sum(ages) / len(ages), 1) if ages else 0.0,
    }


class InMemoryBackend:
    """Shared in-memory records for all operation sets"""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.teams: Dict[str, Dict[str, Any]] = {}
        self.bugs: Dict[str, Dict[str, Any]] = {}
        self.comments: Dict[str, Dict[str, Any]] = {}
        self.files: Dict[str, Dict[str, Any]] = {}
        self._ids = {kind: itertools.count(1) for kind in ('user', 'team', 'bug', 'comment', 'file')}

    def next_id(self, kind: str) -> str:
        prefix = {'user': 'u', 'team': 't', 'bug': '', 'comment': 'c', 'file': 'f'}[kind]
        return f"{prefix}{next(self._ids[kind])}"

    # ------------------------------------------------------------------
    # Record helpers
    # ------------------------------------------------------------------

    def add_user(self, name: str, email: str, role: str = 'developer', user_id: Optional[str] = None) -> Dict[str, Any]:
        user = {'id': user_id or self.next_id('user'), 'name': name, 'email': email, 'role': role}
        self.users[user['id']] = user
        return user

    def add_team(
        self,
        name: str,
        created_by: str,
        members: Iterable[str] = (),
        description: str = ''
    ) -> Dict[str, Any]:
        team = {
            'id': self.next_id('team'),
            'name': name,
            'description': description,
            'created_by': created_by,
            'created_at': datetime.now(),
            'members': [{'user_id': created_by, 'role': 'admin'}],
        }
        for member_id in members:
            if member_id != created_by:
                team['members'].append({'user_id': member_id, 'role': 'member'})
        self.teams[team['id']] = team
        return team

    def add_bug(
        self,
        title: str,
        reported_by: str,
        team_id: Optional[str] = None,
        priority: str = 'medium',
        status: str = 'open',
        assigned_to: Iterable[str] = (),
        created_at: Optional[datetime] = None,
        **extra: Any
    ) -> Dict[str, Any]:
        now = created_at or datetime.now()
        bug = {
            'id': self.next_id('bug'),
            'title': title,
            'description': extra.pop('description', ''),
            'priority': priority,
            'status': status,
            'component': extra.pop('component', None),
            'team_id': team_id,
            'reported_by': reported_by,
            'assigned_to': list(assigned_to),
            'created_at': now,
            'updated_at': now,
        }
        bug.update(extra)
        self.bugs[bug['id']] = bug
        return bug

    def is_member(self, user_id: str, team_id: Optional[str]) -> bool:
        team = self.teams.get(team_id) if team_id else None
        return bool(team) and any(m['user_id'] == user_id for m in team['members'])

    def member_role(self, user_id: str, team_id: str) -> Optional[str]:
        team = self.teams.get(team_id)
        if not team:
            return None
        for member in team['members']:
            if member['user_id'] == user_id:
                return member['role']
        return None

    def teams_for(self, user_id: str) -> List[Dict[str, Any]]:
        return [team for team in self.teams.values() if self.is_member(user_id, team['id'])]

    def visible_bugs(self, user_id: str) -> List[Dict[str, Any]]:
        team_ids = {team['id'] for team in self.teams_for(user_id)}
        return [
            bug for bug in self.bugs.values()
            if bug.get('team_id') in team_ids or bug.get('reported_by') == user_id
        ]

    def find_user(self, identifier: str) -> Optional[Dict[str, Any]]:
        needle = identifier.strip().lower()
        for user in self.users.values():
            if user['id'] == identifier or user['email'].lower() == needle:
                return user
        for user in self.users.values():
            if user['name'].lower() == needle or user['name'].lower().split()[0] == needle:
                return user
        return None

    def user_name(self, user_id: str) -> str:
        user = self.users.get(user_id)
        return user['name'] if user else user_id

    def collaborators(self) -> Collaborators:
        return Collaborators(
            bugs=InMemoryBugOperations(self),
            teams=InMemoryTeamOperations(self),
            users=InMemoryUserOperations(self),
            comments=InMemoryCommentOperations(self),
            files=InMemoryFileOperations(self),
        )

    def seed_demo(self) -> Dict[str, Any]:
        """Populate a small demo workspace; returns the demo user."""
        alice = self.add_user('Alice Johnson', 'alice@example.com', 'manager')
        john = self.add_user('John Smith', 'john@example.com', 'developer')
        priya = self.add_user('Priya Patel', 'priya@example.com', 'tester')
        self.add_user('Marco Rossi', 'marco@example.com', 'designer')

        team = self.add_team('Core Platform', alice['id'], [john['id'], priya['id']],
                             description='Platform and infrastructure')
        self.add_bug('Login page freezes on submit', priya['id'], team['id'], priority='high',
                     component='frontend', assigned_to=[john['id']])
        self.add_bug('API returns 500 for empty search', alice['id'], team['id'], priority='critical',
                     component='api')
        self.add_bug('Typo in settings footer', john['id'], team['id'], priority='low',
                     status='resolved', component='frontend')
        return alice


class _InMemoryOperations:
    def __init__(self, backend: InMemoryBackend):
        super().__init__()
        self.backend = backend


class InMemoryBugOperations(_InMemoryOperations, BugOperations):

    def _public(self, bug: Dict[str, Any]) -> Dict[str, Any]:
        public = copy.deepcopy(bug)
        public['assignees'] = [self.backend.user_name(uid) for uid in bug.get('assigned_to', [])]
        return public

    async def list(self, user_id: str, filters: Dict[str, Any], options: Dict[str, Any]) -> ActionResult:
        filters = filters or {}
        options = options or {}
        bugs = self.backend.visible_bugs(user_id)

        statuses = _as_list(filters.get('status'))
        if statuses:
            bugs = [b for b in bugs if b['status'] in statuses]
        priorities = _as_list(filters.get('priority'))
        if priorities:
            bugs = [b for b in bugs if b['priority'] in priorities]
        if filters.get('component'):
            bugs = [b for b in bugs if b.get('component') == filters['component']]
        if filters.get('team_id'):
            bugs = [b for b in bugs if b.get('team_id') == filters['team_id']]
        if filters.get('assigned_to_me'):
            bugs = [b for b in bugs if user_id in b['assigned_to']]
        if filters.get('assigned_to'):
            bugs = [b for b in bugs if filters['assigned_to'] in b['assigned_to']]
        if filters.get('created_by_me'):
            bugs = [b for b in bugs if b['reported_by'] == user_id]
        if filters.get('unassigned'):
            bugs = [b for b in bugs if not b['assigned_to']]
        if filters.get('bug_ids') is not None:
            wanted = {str(bug_id) for bug_id in filters['bug_ids']}
            bugs = [b for b in bugs if b['id'] in wanted]
        if isinstance(filters.get('start_date'), datetime):
            bugs = [b for b in bugs if b['created_at'] >= filters['start_date']]

        sort = options.get('sort', 'newest')
        if sort == 'priority':
            bugs.sort(key=lambda b: (PRIORITY_RANK.get(b['priority'], 9), -b['created_at'].timestamp()))
        else:
            bugs.sort(key=lambda b: (b['created_at'], int(b['id']) if b['id'].isdigit() else 0),
                      reverse=(sort != 'oldest'))

        analytics = calculate_bug_analytics(bugs) if options.get('include_analytics') else None

        if options.get('limit'):
            bugs = bugs[:int(options['limit'])]

        data: Dict[str, Any] = {'bugs': [self._public(b) for b in bugs], 'count': len(bugs)}
        if analytics is not None:
            data['analytics'] = analytics
        noun = 'bug' if len(bugs) == 1 else 'bugs'
        return self._ok(f"Found {len(bugs)} {noun}.", **data)

    async def create(self, data: Dict[str, Any], user_id: str) -> ActionResult:
        title = (data.get('title') or '').strip()
        if not title:
            return self._fail("A bug needs a title.", "title is required")
        team_id = data.get('team_id')
        if team_id and not self.backend.is_member(user_id, team_id):
            return self._fail("You're not a member of that team.", "not a member")
        status = data.get('status', 'open')
        if status not in BUG_STATUSES:
            status = 'open'

        bug = self.backend.add_bug(
            title,
            user_id,
            team_id=team_id,
            priority=data.get('priority', 'medium'),
            status=status,
            assigned_to=_as_list(data.get('assigned_to')),
            description=data.get('description', ''),
            component=data.get('component'),
        )
        return self._ok(f"Bug \"{title}\" created as #{bug['id']}.", bug=self._public(bug))

    async def details(self, user_id: str, bug_id: str) -> ActionResult:
        bug = self.backend.bugs.get(str(bug_id))
        if not bug:
            return self._fail(f"I couldn't find bug #{bug_id}.", "not found")
        if bug not in self.backend.visible_bugs(user_id):
            return self._fail("You don't have access to that bug.", "access denied")
        comments = [c for c in self.backend.comments.values() if c['bug_id'] == bug['id']]
        return self._ok(f"Bug #{bug['id']}: {bug['title']} ({bug['status']}, {bug['priority']}).",
                        bug=self._public(bug), comment_count=len(comments))

    async def update_status(self, bug_id: str, status: str, user_id: str) -> ActionResult:
        bug = self.backend.bugs.get(str(bug_id))
        if not bug:
            return self._fail(f"I couldn't find bug #{bug_id}.", "not found")
        if status not in BUG_STATUSES:
            return self._fail(f"\"{status}\" isn't a valid status.", "invalid status")
        bug['status'] = status
        bug['updated_at'] = datetime.now()
        return self._ok(f"Bug #{bug['id']} is now {status}.", bug=self._public(bug))

    async def assign(self, bug_id: str, user_ids: List[str], performer_id: str) -> ActionResult:
        bug = self.backend.bugs.get(str(bug_id))
        if not bug:
            return self._fail(f"I couldn't find bug #{bug_id}.", "not found")
        unknown = [uid for uid in user_ids if uid not in self.backend.users]
        if unknown:
            return self._fail("I couldn't find that user.", "user not found")
        bug['assigned_to'] = list(user_ids)
        bug['updated_at'] = datetime.now()
        names = ', '.join(self.backend.user_name(uid) for uid in user_ids)
        return self._ok(f"Bug #{bug['id']} assigned to {names}.", bug=self._public(bug))

    async def delete(self, bug_id: str, user_id: str) -> ActionResult:
        bug = self.backend.bugs.get(str(bug_id))
        if not bug:
            return self._fail(f"I couldn't find bug #{bug_id}.", "not found")
        is_admin = bug.get('team_id') and self.backend.member_role(user_id, bug['team_id']) == 'admin'
        if bug['reported_by'] != user_id and not is_admin:
            return self._fail("Only the reporter or a team admin can delete this bug.", "permission denied")
        del self.backend.bugs[bug['id']]
        return self._ok(f"Bug #{bug['id']} deleted.", deleted_id=bug['id'])

    async def search(self, user_id: str, text: str) -> ActionResult:
        needle = (text or '').lower()
        bugs = [
            b for b in self.backend.visible_bugs(user_id)
            if needle in b['title'].lower() or needle in (b.get('description') or '').lower()
        ]
        return self._ok(f"Found {len(bugs)} matching bug(s).",
                        bugs=[self._public(b) for b in bugs], count=len(bugs))

    async def stats(self, user_id: str) -> ActionResult:
        bugs = self.backend.visible_bugs(user_id)
        analytics = calculate_bug_analytics(bugs)
        analytics['assigned_to_me'] = sum(1 for b in bugs if user_id in b['assigned_to'])
        analytics['reported_by_me'] = sum(1 for b in bugs if b['reported_by'] == user_id)
        open_count = analytics['by_status'].get('open', 0)
        return self._ok(f"You can see {analytics['total']} bugs, {open_count} open.", stats=analytics)


class InMemoryTeamOperations(_InMemoryOperations, TeamOperations):

    def _public(self, team: Dict[str, Any]) -> Dict[str, Any]:
        public = copy.deepcopy(team)
        for member in public['members']:
            member['name'] = self.backend.user_name(member['user_id'])
        public['member_count'] = len(public['members'])
        return public

    async def list_for_user(self, user_id: str) -> ActionResult:
        teams = [self._public(t) for t in self.backend.teams_for(user_id)]
        return self._ok(f"You're in {len(teams)} team(s).", teams=teams, count=len(teams))

    async def create(self, data: Dict[str, Any], user_id: str) -> ActionResult:
        name = (data.get('name') or '').strip()
        if not name:
            return self._fail("A team needs a name.", "name is required")
        if any(t['name'].lower() == name.lower() for t in self.backend.teams.values()):
            return self._fail(f"A team called \"{name}\" already exists.", "already exists")
        team = self.backend.add_team(name, user_id, description=data.get('description', ''))
        return self._ok(f"Team \"{name}\" created. You're its admin.", team=self._public(team))

    async def details(self, user_id: str, team_id: str) -> ActionResult:
        team = self.backend.teams.get(team_id)
        if not team:
            return self._fail("I couldn't find that team.", "not found")
        if not self.backend.is_member(user_id, team_id):
            return self._fail("You're not a member of that team.", "not a member")
        bug_count = sum(1 for b in self.backend.bugs.values() if b.get('team_id') == team_id)
        return self._ok(f"{team['name']} has {len(team['members'])} member(s) and {bug_count} bug(s).",
                        team=self._public(team), bug_count=bug_count)

    async def add_member(self, team_id: str, identifier: str, role: str, performer_id: str) -> ActionResult:
        team = self.backend.teams.get(team_id)
        if not team:
            return self._fail("I couldn't find that team.", "not found")
        if self.backend.member_role(performer_id, team_id) not in ('admin', 'owner'):
            return self._fail("Only team admins can add members.", "permission denied")
        user = self.backend.find_user(identifier)
        if not user:
            return self._fail(f"I couldn't find a user matching \"{identifier}\".", "user not found")
        if self.backend.is_member(user['id'], team_id):
            return self._fail(f"{user['name']} is already a member of {team['name']}.", "already exists")
        team['members'].append({'user_id': user['id'], 'role': role if role in TEAM_ROLES else 'member'})
        return self._ok(f"Added {user['name']} to {team['name']}.", team=self._public(team), user=dict(user))

    async def search(self, user_id: str, text: str) -> ActionResult:
        needle = (text or '').lower()
        teams = [self._public(t) for t in self.backend.teams.values() if needle in t['name'].lower()]
        return self._ok(f"Found {len(teams)} matching team(s).", teams=teams, count=len(teams))

    async def stats(self, user_id: str) -> ActionResult:
        stats = []
        for team in self.backend.teams_for(user_id):
            bugs = [b for b in self.backend.bugs.values() if b.get('team_id') == team['id']]
            stats.append({
                'team_id': team['id'],
                'name': team['name'],
                'members': len(team['members']),
                'bugs': calculate_bug_analytics(bugs),
            })
        return self._ok(f"Stats for {len(stats)} team(s).", teams=stats, count=len(stats))


class InMemoryUserOperations(_InMemoryOperations, UserOperations):

    async def search(self, user_id: str, text: str, filters: Dict[str, Any]) -> ActionResult:
        needle = (text or '').strip().lower()
        filters = filters or {}
        ranked = []
        for user in self.backend.users.values():
            rank = match_rank(user, needle)
            if rank is None or (filters.get('role') and user['role'] != filters['role']):
                continue
            ranked.append((rank, user))
        # Stable sort keeps insertion order within a rank
        ranked.sort(key=lambda pair: pair[0])
        users = [dict(user) for _, user in ranked]
        return self._ok(f"Found {len(users)} user(s).", users=users, count=len(users))

    async def profile(self, user_id: str, target_id: str) -> ActionResult:
        user = self.backend.users.get(target_id)
        if not user:
            return self._fail("I couldn't find that user.", "not found")
        teams = [{'id': t['id'], 'name': t['name']} for t in self.backend.teams_for(target_id)]
        assigned = sum(1 for b in self.backend.bugs.values() if target_id in b['assigned_to'])
        reported = sum(1 for b in self.backend.bugs.values() if b['reported_by'] == target_id)
        return self._ok(f"{user['name']} ({user['role']}) is in {len(teams)} team(s).",
                        user=dict(user), teams=teams, assigned_bugs=assigned, reported_bugs=reported)

    async def team_members(self, user_id: str, team_id: str) -> ActionResult:
        team = self.backend.teams.get(team_id)
        if not team:
            return self._fail("I couldn't find that team.", "not found")
        if not self.backend.is_member(user_id, team_id):
            return self._fail("You're not a member of that team.", "not a member")
        users = []
        for member in team['members']:
            user = dict(self.backend.users.get(member['user_id'], {'id': member['user_id']}))
            user['team_role'] = member['role']
            users.append(user)
        return self._ok(f"{team['name']} has {len(users)} member(s).", users=users, count=len(users))


class InMemoryCommentOperations(_InMemoryOperations, CommentOperations):

    async def list(self, user_id: str, bug_id: str) -> ActionResult:
        if str(bug_id) not in self.backend.bugs:
            return self._fail(f"I couldn't find bug #{bug_id}.", "not found")
        comments = [dict(c) for c in self.backend.comments.values() if c['bug_id'] == str(bug_id)]
        return self._ok(f"Bug #{bug_id} has {len(comments)} comment(s).",
                        comments=comments, count=len(comments))

    async def create(self, user_id: str, bug_id: str, data: Dict[str, Any]) -> ActionResult:
        if str(bug_id) not in self.backend.bugs:
            return self._fail(f"I couldn't find bug #{bug_id}.", "not found")
        content = (data.get('content') or '').strip()
        if not content:
            return self._fail("A comment can't be empty.", "content is required")
        comment = {
            'id': self.backend.next_id('comment'),
            'bug_id': str(bug_id),
            'user_id': user_id,
            'content': content,
            'created_at': datetime.now(),
        }
        self.backend.comments[comment['id']] = comment
        return self._ok(f"Comment added to bug #{bug_id}.", comment=dict(comment))

    async def search(self, user_id: str, text: str) -> ActionResult:
        needle = (text or '').lower()
        comments = [dict(c) for c in self.backend.comments.values() if needle in c['content'].lower()]
        return self._ok(f"Found {len(comments)} matching comment(s).", comments=comments, count=len(comments))


class InMemoryFileOperations(_InMemoryOperations, FileOperations):

    async def list(self, user_id: str, bug_id: str) -> ActionResult:
        if str(bug_id) not in self.backend.bugs:
            return self._fail(f"I couldn't find bug #{bug_id}.", "not found")
        files = [dict(f) for f in self.backend.files.values() if f['bug_id'] == str(bug_id)]
        return self._ok(f"Bug #{bug_id} has {len(files)} file(s).", files=files, count=len(files))

    async def create(self, user_id: str, bug_id: str, data: Dict[str, Any]) -> ActionResult:
        if str(bug_id) not in self.backend.bugs:
            return self._fail(f"I couldn't find bug #{bug_id}.", "not found")
        name = (data.get('name') or '').strip()
        if not name:
            return self._fail("A file needs a name.", "name is required")
        record = {
            'id': self.backend.next_id('file'),
            'bug_id': str(bug_id),
            'name': name,
            'uploaded_by': user_id,
            'created_at': datetime.now(),
        }
        self.backend.files[record['id']] = record
        return self._ok(f"Attached {name} to bug #{bug_id}.", file=dict(record))

    async def search(self, user_id: str, text: str, filters: Dict[str, Any]) -> ActionResult:
        needle = (text or '').lower()
        filters = filters or {}
        files = [
            dict(f) for f in self.backend.files.values()
            if needle in f['name'].lower()
            and (not filters.get('bug_id') or f['bug_id'] == str(filters['bug_id']))
        ]
        return self._ok(f"Found {len(files)} matching file(s).", files=files, count=len(files))
