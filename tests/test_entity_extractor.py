import pytest

from intelligence.entity_extractor import EntityExtractor, KeywordBucketExtractor, PRIORITY_BUCKETS


@pytest.fixture(scope="module")
def extractor():
    return EntityExtractor()


class TestBugCreate:
    def test_quoted_title_and_priority(self, extractor):
        entities = extractor.extract("create bug 'Login fails' high priority", 'bug_create')
        assert entities['title'] == 'Login fails'
        assert entities['priority'] == 'high'
        assert entities['names'] == ['Login fails']

    def test_priority_suffix_is_trimmed_from_title(self, extractor):
        entities = extractor.extract("report a bug about checkout crash with high priority", 'bug_create')
        assert entities['title'] == 'checkout crash'

    def test_bucket_order_beats_text_order(self, extractor):
        entities = extractor.extract("create a low priority bug, this is urgent", 'bug_create')
        assert entities['priority'] == 'high'

    def test_quoted_text_does_not_feed_keyword_buckets(self, extractor):
        entities = extractor.extract("create bug 'urgent login' low priority", 'bug_create')
        assert entities['title'] == 'urgent login'
        assert entities['priority'] == 'low'

    def test_component(self, extractor):
        entities = extractor.extract("create a bug for the broken database migration", 'bug_create')
        assert entities['component'] == 'database'


class TestBugList:
    def test_limit_and_priority(self, extractor):
        entities = extractor.extract("show me 5 high priority bugs", 'bug_list')
        assert entities['limit'] == 5
        assert entities['priority'] == 'high'
        assert entities['numbers'] == [5]

    def test_flags(self, extractor):
        entities = extractor.extract("show my open bugs", 'bug_list')
        assert entities['assigned_to_me'] is True
        assert entities['status'] == 'open'

        assert extractor.extract("show unassigned bugs", 'bug_list')['unassigned'] is True

    def test_my_bugs_allows_words_between(self, extractor):
        assert extractor.extract("show my high priority bugs", 'bug_list')['assigned_to_me'] is True
        assert extractor.extract("list my issues", 'bug_list')['assigned_to_me'] is True
        assert 'assigned_to_me' not in extractor.extract("show my team bugs", 'bug_list')

    def test_sort(self, extractor):
        assert extractor.extract("show the oldest bugs", 'bug_list')['sort'] == 'oldest'


class TestTeams:
    def test_team_name_after_called(self, extractor):
        assert extractor.extract("create team called Falcons", 'team_create')['team_name'] == 'Falcons'

    def test_quoted_team_name(self, extractor):
        entities = extractor.extract("create team 'Mobile Squad' for the app", 'team_create')
        assert entities['team_name'] == 'Mobile Squad'

    def test_member_by_email(self, extractor):
        entities = extractor.extract("add bob@example.com to the team as admin", 'team_add_member')
        assert entities['member_identifier'] == 'bob@example.com'
        assert entities['emails'] == ['bob@example.com']
        assert entities['role'] == 'admin'

    def test_member_by_name(self, extractor):
        entities = extractor.extract("add Marco to the team", 'team_add_member')
        assert entities['member_identifier'] == 'Marco'


def test_comment_content(extractor):
    entities = extractor.extract("comment on bug 3: fixed in build 12", 'comment_add')
    assert entities['content'] == 'fixed in build 12'
    assert entities['numbers'] == [3, 12]


def test_file_name(extractor):
    assert extractor.extract("attach file log.txt to bug 2", 'file_attach')['file_name'] == 'log.txt'


def test_search_term(extractor):
    assert extractor.extract("search for login timeout", 'search')['search_term'] == 'login timeout'


def test_people_role(extractor):
    assert extractor.extract("show developers", 'people_list')['role'] == 'developer'


def test_absent_fields_are_missing_keys(extractor):
    entities = extractor.extract("hello", 'greeting')
    assert entities == {}
    assert None not in extractor.extract("create a bug", 'bug_create').values()


def test_unknown_intent_runs_generic_extractors_only(extractor):
    entities = extractor.extract("ping ops@example.com about 42 'things'", 'greeting')
    assert entities == {'names': ['things'], 'emails': ['ops@example.com'], 'numbers': [42]}


def test_keyword_bucket_extractor_standalone():
    bucket = KeywordBucketExtractor('priority', PRIORITY_BUCKETS)
    assert bucket.extract("nothing relevant") is None
    assert bucket.extract("a minor glitch") == 'low'
