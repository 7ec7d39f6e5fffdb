# test_config_manager.py
import json
import os
import shutil
import tempfile
import unittest

import config_manager
from models import AuthorAlias


class TestStateFile(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp)
        self.state_file = os.path.join(self.tmp, "data", "state.json")

    def test_missing_file_gives_default_state(self):
        state = config_manager.load_app_state(self.state_file)
        self.assertEqual(len(state.groups), 1)
        self.assertEqual(state.groups[0].id, config_manager.DEFAULT_GROUP_ID)
        self.assertEqual(state.aliases, [])

    def test_corrupt_file_gives_default_state(self):
        os.makedirs(os.path.dirname(self.state_file))
        with open(self.state_file, "w", encoding="utf-8") as f:
            f.write("{not json")
        state = config_manager.load_app_state(self.state_file)
        self.assertEqual(state.groups[0].name, config_manager.DEFAULT_GROUP_NAME)

    def test_legacy_repo_paths_are_migrated(self):
        state = config_manager.state_from_dict(
            {"repoPaths": ["/work/a", "/work/b"], "authorAliases": [{"original": "a", "alias": "A"}]}
        )
        self.assertEqual(len(state.groups), 1)
        self.assertEqual(state.groups[0].paths, ["/work/a", "/work/b"])
        self.assertEqual(state.aliases[0].alias, "A")

    def test_save_writes_camel_case_json(self):
        state = config_manager.default_state()
        state = config_manager.add_alias(state, "alice@laptop", "Alice")
        self.assertTrue(config_manager.save_app_state(self.state_file, state))
        with open(self.state_file, encoding="utf-8") as f:
            data = json.load(f)
        self.assertIn("repoGroups", data)
        self.assertEqual(data["authorAliases"][0]["alias"], "Alice")
        self.assertEqual(config_manager.load_app_state(self.state_file), state)


class TestStateEdits(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp)
        self.repo_a = os.path.join(self.tmp, "repoA")
        self.repo_b = os.path.join(self.tmp, "repoB")
        self.not_repo = os.path.join(self.tmp, "plain")
        for path in (self.repo_a, self.repo_b):
            os.makedirs(os.path.join(path, ".git"))
        os.makedirs(self.not_repo)

    def test_add_repos_single_path_and_list(self):
        state = config_manager.default_state()
        state = config_manager.add_repos(state, "default", self.repo_a)
        state = config_manager.add_repos(state, "default", [self.repo_a, self.repo_b, self.not_repo])
        self.assertEqual(state.groups[0].paths, [self.repo_a, self.repo_b])

    def test_add_repos_unknown_group(self):
        state = config_manager.default_state()
        self.assertIs(config_manager.add_repos(state, "missing", self.repo_a), state)

    def test_group_edits_return_new_state(self):
        original = config_manager.default_state()
        state = config_manager.add_group(original, "后端")
        self.assertEqual(len(original.groups), 1)
        self.assertEqual(len(state.groups), 2)

        new_id = state.groups[1].id
        state = config_manager.rename_group(state, new_id, "backend")
        state = config_manager.toggle_group(state, new_id, False)
        group = config_manager.find_group(state, "backend")
        self.assertEqual(group.id, new_id)
        self.assertFalse(group.selected)

        state = config_manager.remove_group(state, new_id)
        self.assertIsNone(config_manager.find_group(state, new_id))

    def test_selected_repo_paths(self):
        state = config_manager.default_state()
        state = config_manager.add_repos(state, "default", [self.repo_a])
        state = config_manager.add_group(state, "other")
        other_id = state.groups[1].id
        state = config_manager.add_repos(state, other_id, [self.repo_a, self.repo_b])
        self.assertEqual(config_manager.selected_repo_paths(state), [self.repo_a, self.repo_b])

        state = config_manager.toggle_group(state, other_id, False)
        self.assertEqual(config_manager.selected_repo_paths(state), [self.repo_a])

        state = config_manager.remove_repo(state, "default", self.repo_a)
        self.assertEqual(config_manager.selected_repo_paths(state), [])

    def test_alias_first_wins(self):
        state = config_manager.default_state()
        state = config_manager.add_alias(state, "alice", "Alice")
        state = config_manager.add_alias(state, " ALICE ", "Someone Else")
        self.assertEqual(len(state.aliases), 1)
        self.assertEqual(state.aliases[0].alias, "Alice")

        self.assertIs(config_manager.add_alias(state, "", "x"), state)

        state = config_manager.remove_alias(state, state.aliases[0].id)
        self.assertEqual(state.aliases, [])

    def test_alias_ids_are_unique(self):
        state = config_manager.default_state()
        state = config_manager.add_alias(state, "a", "A")
        state = config_manager.add_alias(state, "b", "B")
        ids = [a.id for a in state.aliases]
        self.assertEqual(len(set(ids)), 2)
        self.assertTrue(all(isinstance(a, AuthorAlias) for a in state.aliases))


if __name__ == "__main__":
    unittest.main()
