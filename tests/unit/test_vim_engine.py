"""Tests for the vim engine state machine."""

from __future__ import annotations

import pytest

from tuidb.vim import CommandKind as K
from tuidb.vim import VimEngine, VimMode
from tuidb.vim.keymap import (
    DefaultVimKeymapProvider,
    VimBinding,
    BindingType,
    get_vim_keymap,
    set_vim_keymap,
)


def feed(engine: VimEngine, *keys: str, cursor=(0, 0)):
    result = None
    for key in keys:
        result = engine.handle_key(key, cursor)
    return result


class TestNormalMode:
    """Keys in normal mode."""

    def test_motion_emits_command(self):
        """A bound motion emits its command with count 1."""
        result = feed(VimEngine(), "j")
        assert result.command.kind == K.MOVE_DOWN
        assert result.command.count == 1
        assert result.command.is_motion

    def test_count_prefix_applies_to_next_command(self):
        """Digits accumulate into a count for the next command."""
        engine = VimEngine()
        first = feed(engine, "3")
        assert first.consumed and first.command is None
        assert engine.state.input_buffer == "3"

        result = feed(engine, "j")
        assert result.command.kind == K.MOVE_DOWN
        assert result.command.count == 3
        assert engine.state.input_buffer == ""

    def test_zero_inside_count_is_a_digit(self):
        """0 extends a count that has started."""
        result = feed(VimEngine(), "1", "0", "k")
        assert result.command.count == 10

    def test_leading_zero_is_line_start(self):
        """0 without a count is the line-start motion."""
        result = feed(VimEngine(), "0")
        assert result.command.kind == K.LINE_START

    def test_gg_goes_to_top(self):
        """g is held as a prefix until the second g."""
        engine = VimEngine()
        first = feed(engine, "g")
        assert first.command is None
        assert engine.state.pending_prefix == "g"

        result = feed(engine, "g")
        assert result.command.kind == K.GOTO_TOP
        assert engine.state.pending_prefix == ""

    def test_unmatched_prefix_reevaluates_key(self):
        """A key that does not complete the sequence is handled on its own."""
        engine = VimEngine()
        result = feed(engine, "g", "j")
        assert result.command.kind == K.MOVE_DOWN
        assert engine.state.pending_prefix == ""

    def test_capital_g_goes_to_bottom(self):
        assert feed(VimEngine(), "G").command.kind == K.GOTO_BOTTOM

    def test_named_keys_are_not_sequence_prefixes(self):
        """Letters that start key names such as 'tab' do not wait for more keys."""
        engine = VimEngine()
        result = feed(engine, "t")
        assert result.consumed is False
        assert engine.state.pending_prefix == ""

    @pytest.mark.parametrize("key", ["i", "a", "I", "A", "o", "O"])
    def test_insert_entries_switch_mode(self, key):
        engine = VimEngine()
        feed(engine, key)
        assert engine.mode == VimMode.INSERT

    def test_unknown_key_is_not_consumed(self):
        engine = VimEngine()
        engine.state.input_buffer = "4"
        result = feed(engine, "z")
        assert result.consumed is False
        assert result.command is None
        assert engine.state.input_buffer == ""

    def test_global_actions(self):
        """Ctrl chords emit their commands in normal mode."""
        engine = VimEngine()
        assert feed(engine, "ctrl+e").command.kind == K.EXECUTE_AT_CURSOR
        assert feed(engine, "ctrl+r").command.kind == K.EXECUTE_ALL
        assert feed(engine, "ctrl+s").command.kind == K.COMMIT
        assert feed(engine, "ctrl+q").command.kind == K.QUIT


class TestEscape:
    """Esc always returns to a clean normal mode."""

    @pytest.mark.parametrize(
        "keys",
        [
            ["3"],
            ["g"],
            ["2", "g"],
            ["v"],
            ["v", "j", "5"],
            [":", "o", "p"],
            ["/", "x"],
            ["i", "a", "b"],
        ],
    )
    def test_escape_resets_everything_but_register(self, keys):
        engine = VimEngine()
        engine.yank("kept")
        feed(engine, *keys, cursor=(2, 3))

        feed(engine, "escape")

        state = engine.state
        assert engine.mode == VimMode.NORMAL
        assert state.pending_prefix == ""
        assert state.input_buffer == ""
        assert state.visual_anchor is None
        assert state.command_buffer == ""
        assert engine.command_line == ""
        assert engine.register == "kept"


class TestVisualMode:
    """Selections are anchored where v was pressed."""

    def test_v_anchors_at_cursor(self):
        engine = VimEngine()
        result = feed(engine, "v", cursor=(1, 2))
        assert result.command.kind == K.ENTER_VISUAL
        assert engine.mode == VimMode.VISUAL
        assert engine.state.visual_anchor == (1, 2)

    def test_yank_emits_ordered_selection(self):
        """The selection is ordered even when the cursor moved before the anchor."""
        engine = VimEngine()
        feed(engine, "v", cursor=(1, 2))
        result = engine.handle_key("y", (0, 5))

        assert result.command.kind == K.YANK_SELECTION
        assert result.command.selection == ((0, 5), (1, 2))
        assert engine.mode == VimMode.NORMAL
        assert engine.state.visual_anchor is None

    @pytest.mark.parametrize("key", ["d", "x"])
    def test_delete_operators_emit_delete_selection(self, key):
        engine = VimEngine()
        feed(engine, "v", cursor=(0, 0))
        result = engine.handle_key(key, (0, 3))
        assert result.command.kind == K.DELETE_SELECTION
        assert result.command.selection == ((0, 0), (0, 3))

    def test_motions_keep_visual_mode(self):
        engine = VimEngine()
        feed(engine, "v", "3", "l")
        assert engine.mode == VimMode.VISUAL

    def test_escape_exits_visual(self):
        engine = VimEngine()
        result = feed(engine, "v", "escape")
        assert result.command.kind == K.EXIT_VISUAL
        assert engine.mode == VimMode.NORMAL


class TestCommandMode:
    """The : command line and / search."""

    def test_submit_command_line(self):
        engine = VimEngine()
        feed(engine, ":", "q")
        assert engine.command_line == ":q"

        result = feed(engine, "enter")
        assert result.command.kind == K.SUBMIT_COMMAND_LINE
        assert result.command.text == "q"
        assert engine.mode == VimMode.NORMAL

    def test_spaces_are_kept(self):
        engine = VimEngine()
        feed(engine, ":", *"open", "space", *"a.db")
        result = feed(engine, "enter")
        assert result.command.text == "open a.db"

    def test_search_remembers_pattern(self):
        engine = VimEngine()
        result = feed(engine, "/", "a", "b", "enter")
        assert result.command.kind == K.SUBMIT_SEARCH
        assert result.command.text == "ab"
        assert engine.state.last_search == "ab"

    def test_backspace_edits_then_cancels(self):
        engine = VimEngine()
        feed(engine, ":", "x")
        feed(engine, "backspace")
        assert engine.command_line == ":"
        assert engine.mode == VimMode.COMMAND

        result = feed(engine, "backspace")
        assert result.command.kind == K.CANCEL_COMMAND_LINE
        assert engine.mode == VimMode.NORMAL


class TestInsertMode:
    """Typing keys in insert mode."""

    def test_printable_key_inserts(self):
        engine = VimEngine()
        result = feed(engine, "i", "x")
        assert result.command.kind == K.INSERT_CHAR
        assert result.command.text == "x"

    def test_letters_bound_in_normal_mode_are_typed(self):
        engine = VimEngine()
        result = feed(engine, "i", "j")
        assert result.command.kind == K.INSERT_CHAR

    def test_space_alias(self):
        result = feed(VimEngine(), "i", "space")
        assert result.command.text == " "

    def test_escape_returns_to_normal(self):
        engine = VimEngine()
        result = feed(engine, "i", "escape")
        assert result.command.kind == K.EXIT_INSERT
        assert engine.mode == VimMode.NORMAL

    def test_execute_works_while_typing(self):
        engine = VimEngine()
        result = feed(engine, "i", "ctrl+e")
        assert result.command.kind == K.EXECUTE_AT_CURSOR
        assert engine.mode == VimMode.INSERT


class TestKeymapProvider:
    """The keymap is data and can be swapped."""

    def test_custom_keymap_is_used(self):
        provider = DefaultVimKeymapProvider()
        provider.get_config().actions["Q"] = VimBinding("Q", BindingType.ACTION, K.QUIT, "Quit")
        set_vim_keymap(provider)

        assert get_vim_keymap() is provider
        assert feed(VimEngine(), "Q").command.kind == K.QUIT

    def test_describe_lists_bindings(self):
        pairs = dict(DefaultVimKeymapProvider().describe())
        assert pairs["gg"] == "First line"
        assert pairs["ctrl+e"] == "Execute statement"
