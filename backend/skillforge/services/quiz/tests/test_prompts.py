from skillforge.prompts import PROMPTS, load_prompts


def test_bundled_quiz_prompts_are_loaded():
    user_prompt = PROMPTS["user"]["quiz"]["generate_quiz"]

    assert PROMPTS["system"]["quiz"]["generate_quiz"]
    assert "{count}" in user_prompt and "{topics}" in user_prompt


def test_templates_indexed_by_kind_group_and_name(tmp_path):
    (tmp_path / "system" / "quiz").mkdir(parents=True)
    (tmp_path / "system" / "quiz" / "generate.txt").write_text("  Be terse.\n")
    (tmp_path / "system" / "quiz" / "notes.md").write_text("ignored")
    (tmp_path / "system" / "stray.txt").write_text("not in a group")

    prompts = load_prompts(tmp_path)

    assert prompts == {"system": {"quiz": {"generate": "Be terse."}}, "user": {}}
