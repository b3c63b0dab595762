"""
Static intent catalog.

Intent name -> trigger phrases and canned responses. Order matters: when two
intents score the same, the one listed first wins.
"""

from typing import Dict, List

from .base_types import IntentDefinition


def _intent(name: str, patterns: List[str], responses: List[str]) -> IntentDefinition:
    return IntentDefinition(name=name, patterns=tuple(patterns), responses=tuple(responses))


INTENT_CATALOG: Dict[str, IntentDefinition] = {
    definition.name: definition for definition in (
        _intent('greeting', [
            'hello', 'hi', 'hey', 'greetings', 'good morning', 'good afternoon',
            'good evening', 'howdy', "what's up", 'sup',
        ], [
            "Hello! I'm your bug tracking assistant. How can I help you today?",
            "Hi there! Ready to squash some bugs? What would you like to do?",
        ]),
        _intent('help', [
            'help', 'what can you do', 'commands', 'features', 'assist', 'support',
            'how to use', 'guide', 'tutorial',
        ], [
            "I can help you create and track bugs, manage teams, find people, and keep an eye on "
            "project status. Try \"show my bugs\", \"create a bug for the login page\" or "
            "\"create team called Falcons\".",
        ]),
        _intent('bug_create', [
            'create bug', 'new bug', 'add bug', 'report bug', 'bug report', 'issue',
            'problem', 'create issue', 'log bug', 'submit bug', 'file bug', 'found bug',
            'bug found', 'create a bug', 'report an issue', 'bug for', 'issue with',
            'problem with', 'trouble with',
        ], [
            "I'll help you create a new bug report.",
        ]),
        _intent('bug_list', [
            'show bugs', 'list bugs', 'view bugs', 'all bugs', 'my bugs', 'bug list',
            'see bugs', 'display bugs',
        ], [
            "Here are the bugs I found.",
        ]),
        _intent('team_create', [
            'create team', 'new team', 'add team', 'make team', 'team create',
            'start team', 'build team',
        ], [
            "Let's set up a new team.",
        ]),
        _intent('team_list', [
            'show teams', 'list teams', 'my teams', 'view teams', 'all teams',
            'team list', 'see teams',
        ], [
            "Here are your teams.",
        ]),
        _intent('people_list', [
            'show people', 'list people', 'team members', 'members', 'who',
            'users', 'show users', 'list users', 'colleagues', 'teammates',
        ], [
            "Here are the people I found.",
        ]),
        _intent('dashboard', [
            'status', 'how are things', 'overview', 'summary', 'dashboard',
            "what's happening", 'project status',
        ], [
            "Here's an overview of where things stand.",
        ]),
        _intent('search', [
            'search', 'find', 'look for', 'search for', 'locate', 'where is',
            'show me', 'display', 'get me',
        ], [
            "Here's what I found.",
        ]),
        _intent('bug_assign', [
            'assign bug', 'assign to', 'give bug to', 'assign task', 'delegate',
            'assign issue', 'give task',
        ], [
            "Let's get that bug assigned.",
        ]),
        _intent('priority_bugs', [
            'high priority', 'urgent bugs', 'critical bugs', 'important bugs',
            'priority bugs', 'urgent issues',
        ], [
            "Here are the bugs that need attention first.",
        ]),
        _intent('goodbye', [
            'bye', 'goodbye', 'see you', 'exit', 'quit', 'thanks', 'thank you',
            "that's all", 'done',
        ], [
            "Goodbye! Happy bug hunting!",
            "See you later! Your bugs will be waiting.",
        ]),
        _intent('general_query', [
            'how', 'what', 'when', 'where', 'why', 'which', 'who', 'can you',
            'tell me', 'explain', 'describe', 'information about',
        ], [
            "I can help with bugs, teams, people, comments and files. What would you like to do?",
        ]),
        _intent('bug_search', [
            'search bugs', 'find bugs', 'search for bugs', 'look for bugs',
            'find bug', 'search issues',
        ], [
            "Here are the matching bugs.",
        ]),
        _intent('team_search', [
            'search teams', 'find team', 'find teams', 'look for team',
        ], [
            "Here are the matching teams.",
        ]),
        _intent('bug_details', [
            'bug details', 'show bug', 'bug info', 'details of bug', 'open bug',
            'describe bug',
        ], [
            "Here are the details for that bug.",
        ]),
        _intent('bug_update', [
            'update bug', 'update status', 'change status', 'set status', 'mark bug',
            'close bug', 'resolve bug', 'reopen bug', 'mark as resolved', 'mark as closed',
            'change priority',
        ], [
            "I'll update that bug.",
        ]),
        _intent('bug_delete', [
            'delete bug', 'remove bug', 'delete issue', 'remove issue',
        ], [
            "I'll remove that bug.",
        ]),
        _intent('bug_stats', [
            'bug stats', 'bug statistics', 'bug analytics', 'bug metrics',
            'bug count', 'how many bugs',
        ], [
            "Here are your bug statistics.",
        ]),
        _intent('team_details', [
            'team details', 'team info', 'show team', 'about team',
        ], [
            "Here are the team details.",
        ]),
        _intent('team_add_member', [
            'add member', 'add to team', 'invite to team', 'add user to team',
            'invite member',
        ], [
            "I'll add them to the team.",
        ]),
        _intent('team_stats', [
            'team stats', 'team statistics', 'team analytics', 'team performance',
            'team metrics',
        ], [
            "Here's how your teams are doing.",
        ]),
        _intent('user_profile', [
            'my profile', 'show profile', 'user profile', 'profile',
        ], [
            "Here's the profile.",
        ]),
        _intent('comment_add', [
            'add comment', 'post comment', 'write comment', 'comment on',
            'comment on bug',
        ], [
            "I'll add your comment.",
        ]),
        _intent('comment_list', [
            'show comments', 'list comments', 'view comments', 'get comments',
            'show comments on bug', 'comments for bug',
        ], [
            "Here are the comments.",
        ]),
        _intent('file_list', [
            'show files', 'list files', 'view files', 'attachments', 'show attachments',
            'show files for bug',
        ], [
            "Here are the files.",
        ]),
        _intent('file_attach', [
            'attach file', 'upload file', 'add file', 'add attachment',
            'attach file to bug',
        ], [
            "I'll attach that file.",
        ]),
        _intent('analytics', [
            'analytics', 'insights', 'metrics', 'report', 'statistics',
        ], [
            "Here are your analytics.",
        ]),
        _intent('user_search', [
            'find user', 'find users', 'search users', 'search people', 'find person',
            'look for user',
        ], [
            "Here are the matching people.",
        ]),
        _intent('comment_search', [
            'search comments', 'find comments', 'find comment', 'look for comments',
        ], [
            "Here are the matching comments.",
        ]),
        _intent('file_search', [
            'search files', 'find files', 'find file', 'search attachments',
            'find attachments',
        ], [
            "Here are the matching files.",
        ]),
    )
}


def response_for(intent: str) -> str:
    """First canned response for an intent, or the general one."""
    definition = INTENT_CATALOG.get(intent) or INTENT_CATALOG['general_query']
    return definition.responses[0]
