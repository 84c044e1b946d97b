from __future__ import annotations

import logging
import signal
import time
import tkinter as tk
from typing import Callable, Iterable

from .datatypes import FLOAT_FORMATS, FormatDescriptor, make_custom_format
from .session import PRESETS, DisplaySnapshot, FormatEditor

logger = logging.getLogger(__name__)

UI_FONT = ("DejaVu Sans", 12)
UI_FONT_BOLD = ("DejaVu Sans", 12, "bold")
PANEL_TITLE_FONT = ("DejaVu Sans", 14, "bold")
ENTRY_FONT = ("DejaVu Sans Mono", 13)
VALUE_FONT = ("DejaVu Sans Mono", 13)
HEX_FONT = ("DejaVu Sans Mono", 15, "bold")
BIT_FONT = ("DejaVu Sans Mono", 13, "bold")
BIT_INDEX_FONT = ("DejaVu Sans Mono", 7)
BUTTON_FONT = ("DejaVu Sans", 10)
TOOLTIP_FONT = ("DejaVu Sans", 11)

APP_BG = "#f5f7fa"
PANEL_BG = "#ffffff"
INVALID_BG = "#ffeaea"
ROLE_COLORS = {
    "sign": "#c9e4ff",
    "exponent": "#d8f5d0",
    "fraction": "#ffe3c4",
}
BITS_PER_ROW = 32

PRESET_ORDER = tuple(PRESETS)


class HoverExplain:
    def __init__(
        self,
        widget: tk.Widget,
        text_provider: str | Callable[[], str],
    ) -> None:
        self.widget = widget
        self.text_provider = text_provider
        self._tooltip: tk.Toplevel | None = None

        widget.bind("<Enter>", self._on_enter, add=True)
        widget.bind("<Leave>", self._on_leave, add=True)
        widget.bind("<Motion>", self._on_motion, add=True)

    def _resolve_text(self) -> str:
        if callable(self.text_provider):
            return self.text_provider()
        return self.text_provider

    def _on_enter(self, event: tk.Event) -> None:
        text = self._resolve_text()
        if not text:
            return
        self._tooltip = tk.Toplevel(self.widget)
        self._tooltip.overrideredirect(True)
        self._tooltip.attributes("-topmost", True)
        tk.Label(
            self._tooltip,
            text=text,
            bg="#fffdeb",
            fg="#1f2d3d",
            justify="left",
            padx=8,
            pady=6,
            relief="solid",
            bd=1,
            font=TOOLTIP_FONT,
        ).pack()
        self._move_tooltip(event)

    def _on_leave(self, _event: tk.Event) -> None:
        if self._tooltip is not None:
            self._tooltip.destroy()
            self._tooltip = None

    def _on_motion(self, event: tk.Event) -> None:
        self._move_tooltip(event)

    def _move_tooltip(self, event: tk.Event) -> None:
        if self._tooltip is None:
            return
        self._tooltip.geometry(f"+{event.x_root + 16}+{event.y_root + 16}")


def bit_role(descriptor: FormatDescriptor, bit_index: int) -> str:
    """Field a bit belongs to; ``bit_index`` 0 is the least significant bit."""
    if bit_index < descriptor.fraction_bits:
        return "fraction"
    if bit_index < descriptor.fraction_bits + descriptor.exponent_bits:
        return "exponent"
    return "sign"


def bit_rows(total_bits: int, per_row: int = BITS_PER_ROW) -> list[list[int]]:
    """Bit indexes laid out most significant first, wrapped every ``per_row``."""
    indexes = list(range(total_bits - 1, -1, -1))
    return [indexes[start : start + per_row] for start in range(0, total_bits, per_row)]


def describe_fields(snapshot: DisplaySnapshot) -> str:
    descriptor = snapshot.descriptor
    sign, exponent_field, fraction_field = snapshot.fields
    return (
        f"{descriptor.name}, bias {descriptor.bias}\n"
        f"class: {snapshot.decoded.classification.value}\n"
        f"sign field: {sign}\n"
        f"exponent field: {exponent_field}\n"
        f"fraction field: {fraction_field}"
    )


class BitGrid(tk.Frame):
    def __init__(
        self,
        parent: tk.Widget,
        descriptor: FormatDescriptor,
        on_toggle: Callable[[int], None],
    ) -> None:
        super().__init__(parent, bg=PANEL_BG)
        self.descriptor = descriptor
        self._on_toggle = on_toggle
        self._cells: dict[int, tk.Label] = {}
        self._render_cache: str | None = None

        for row_indexes in bit_rows(descriptor.total_bits):
            row = tk.Frame(self, bg=PANEL_BG)
            row.pack(anchor="w")
            for bit_index in row_indexes:
                self._build_cell(row, bit_index)

    def _build_cell(self, row: tk.Widget, bit_index: int) -> None:
        role = bit_role(self.descriptor, bit_index)
        column = tk.Frame(row, bg=PANEL_BG)
        left_pad = 6 if bit_index in self._field_starts() else 1
        column.pack(side="left", padx=(left_pad, 1))

        tk.Label(
            column,
            text=str(bit_index),
            bg=PANEL_BG,
            fg="#7f8c8d",
            font=BIT_INDEX_FONT,
        ).pack(side="top")

        cell = tk.Label(
            column,
            text="0",
            width=2,
            bg=ROLE_COLORS[role],
            fg="#1f2d3d",
            relief="solid",
            bd=1,
            font=BIT_FONT,
            cursor="hand2",
        )
        cell.pack(side="top")
        cell.bind("<Button-1>", lambda _e, idx=bit_index: self._on_toggle(idx))
        self._cells[bit_index] = cell

    def _field_starts(self) -> set[int]:
        # Most significant bit of the exponent and fraction fields.
        fraction_bits = self.descriptor.fraction_bits
        exponent_bits = self.descriptor.exponent_bits
        starts = set()
        if exponent_bits:
            starts.add(fraction_bits + exponent_bits - 1)
        if fraction_bits:
            starts.add(fraction_bits - 1)
        return starts

    def render(self, bit_text: str) -> None:
        if self._render_cache == bit_text:
            return
        self._render_cache = bit_text
        total = len(bit_text)
        for position, char in enumerate(bit_text):
            self._cells[total - 1 - position].configure(text=char)


class FormatBlock(tk.LabelFrame):
    def __init__(
        self,
        parent: tk.Widget,
        editor: FormatEditor,
        *,
        on_status: Callable[[str], None],
        on_remove: Callable[[FormatBlock], None] | None = None,
    ) -> None:
        descriptor = editor.descriptor
        super().__init__(
            parent,
            text=self._format_title(descriptor),
            font=PANEL_TITLE_FONT,
            bg=PANEL_BG,
            fg="#22313f",
            bd=1,
            relief="solid",
            padx=10,
            pady=8,
        )
        self.editor = editor
        self._on_status = on_status
        self._on_remove = on_remove

        self.hex_var = tk.StringVar()
        self.decimal_var = tk.StringVar()
        self.hex_display_var = tk.StringVar()
        self.formula_var = tk.StringVar()

        self._build_ui()
        self._apply_snapshot(editor.snapshot)

    @staticmethod
    def _format_title(descriptor: FormatDescriptor) -> str:
        if descriptor.title == descriptor.name:
            return f"{descriptor.name} (bias {descriptor.bias})"
        return f"{descriptor.title} · {descriptor.name}"

    def _build_ui(self) -> None:
        bits_row = tk.Frame(self, bg=PANEL_BG)
        bits_row.pack(fill="x")

        self.bit_grid = BitGrid(bits_row, self.editor.descriptor, self._on_bit_click)
        self.bit_grid.pack(side="left", anchor="s")

        tk.Label(
            bits_row,
            text="=",
            bg=PANEL_BG,
            fg="#6c7a89",
            font=HEX_FONT,
        ).pack(side="left", padx=(12, 6), anchor="s")
        tk.Label(
            bits_row,
            textvariable=self.hex_display_var,
            bg=PANEL_BG,
            fg="#1f2d3d",
            font=HEX_FONT,
        ).pack(side="left", anchor="s")

        formula = tk.Label(
            self,
            textvariable=self.formula_var,
            bg=PANEL_BG,
            fg="#22313f",
            anchor="w",
            font=VALUE_FONT,
        )
        formula.pack(fill="x", pady=(6, 4))
        HoverExplain(formula, lambda: describe_fields(self.editor.snapshot))

        inputs = tk.Frame(self, bg=PANEL_BG)
        inputs.pack(fill="x")

        self.hex_entry = self._build_entry(inputs, self.hex_var, width=22)
        self.hex_entry.bind("<Return>", self._on_hex_commit)
        self.hex_entry.bind("<FocusOut>", self._on_hex_commit)

        self.decimal_entry = self._build_entry(inputs, self.decimal_var, width=28)
        self.decimal_entry.bind("<Return>", self._on_decimal_commit)
        self.decimal_entry.bind("<FocusOut>", self._on_decimal_commit)
        self._default_bg = self.hex_entry.cget("bg")

        if self._on_remove is not None:
            tk.Button(
                inputs,
                text="Remove",
                command=lambda: self._on_remove(self),
                font=BUTTON_FONT,
                bd=1,
                relief="solid",
                cursor="hand2",
                takefocus=False,
            ).pack(side="right")

        presets = tk.Frame(self, bg=PANEL_BG)
        presets.pack(fill="x", pady=(6, 0))
        for name in PRESET_ORDER:
            tk.Button(
                presets,
                text=name,
                command=lambda preset=name: self._on_preset(preset),
                font=BUTTON_FONT,
                padx=6,
                bd=1,
                relief="solid",
                cursor="hand2",
                takefocus=False,
            ).pack(side="left", padx=(0, 4))

        for widget in (self, self.hex_entry, self.decimal_entry):
            widget.bind("<Control-r>", self._on_reset_key, add=True)
            widget.bind("<Control-R>", self._on_reset_key, add=True)

    def _build_entry(self, parent: tk.Widget, variable: tk.StringVar, width: int) -> tk.Entry:
        entry = tk.Entry(
            parent,
            textvariable=variable,
            width=width,
            font=ENTRY_FONT,
            relief="solid",
            bd=1,
            highlightthickness=1,
            highlightbackground="#b8b8b8",
        )
        entry.pack(side="left", padx=(0, 8))
        return entry

    def _set_invalid(self, entry: tk.Entry, is_invalid: bool) -> None:
        if is_invalid:
            entry.configure(bg=INVALID_BG, highlightthickness=2, highlightbackground="#cc4444")
        else:
            entry.configure(bg=self._default_bg, highlightthickness=1, highlightbackground="#b8b8b8")

    def _apply_snapshot(self, snapshot: DisplaySnapshot) -> None:
        self.bit_grid.render(snapshot.bit_text)
        self.hex_display_var.set(snapshot.hex_text)
        self.formula_var.set(snapshot.formula)
        self.hex_var.set(snapshot.hex_text)
        self.decimal_var.set(snapshot.decimal_text)
        self._set_invalid(self.hex_entry, False)
        self._set_invalid(self.decimal_entry, False)

    def _run_edit(self, label: str, edit: Callable[[], object]) -> None:
        start = time.perf_counter()
        edit()
        self._apply_snapshot(self.editor.snapshot)
        logger.debug(
            "%s %s applied in %.2f ms",
            self.editor.descriptor.key,
            label,
            (time.perf_counter() - start) * 1000.0,
        )

    def _on_bit_click(self, bit_index: int) -> None:
        self._run_edit(f"toggle bit {bit_index}", lambda: self.editor.toggle(bit_index))

    def _on_preset(self, name: str) -> None:
        self._run_edit(f"preset {name}", lambda: self.editor.apply_preset(name))
        self._on_status(f"{self.editor.descriptor.title}: set to {name}.")

    def _on_hex_commit(self, _event: tk.Event) -> None:
        text = self.hex_var.get()
        if text == self.editor.snapshot.hex_text:
            self._set_invalid(self.hex_entry, False)
            return
        if not self.editor.commit_hex(text):
            self._set_invalid(self.hex_entry, True)
            self._on_status(f"Invalid hex input for {self.editor.descriptor.title}: {text!r}")
            return
        self._apply_snapshot(self.editor.snapshot)

    def _on_decimal_commit(self, _event: tk.Event) -> None:
        text = self.decimal_var.get()
        if text == self.editor.snapshot.decimal_text:
            self._set_invalid(self.decimal_entry, False)
            return
        if not self.editor.commit_decimal(text):
            self._set_invalid(self.decimal_entry, True)
            self._on_status(f"Invalid decimal input for {self.editor.descriptor.title}: {text!r}")
            return
        self._apply_snapshot(self.editor.snapshot)

    def _on_reset_key(self, _event: tk.Event) -> str:
        self._run_edit("reset", self.editor.reset)
        self._on_status(f"{self.editor.descriptor.title}: reset to π.")
        return "break"


class CustomFormatBar(tk.Frame):
    def __init__(
        self,
        parent: tk.Widget,
        on_add: Callable[[FormatDescriptor], None],
        on_error: Callable[[str], None],
    ) -> None:
        super().__init__(parent, bg=APP_BG)
        self._on_add = on_add
        self._on_error = on_error

        self.sign_var = tk.BooleanVar(value=True)
        self.exponent_var = tk.StringVar(value="4")
        self.fraction_var = tk.StringVar(value="3")

        tk.Label(self, text="Custom format", bg=APP_BG, fg="#22313f", font=UI_FONT_BOLD).pack(
            side="left"
        )
        tk.Checkbutton(
            self,
            text="Sign",
            variable=self.sign_var,
            bg=APP_BG,
            font=UI_FONT,
        ).pack(side="left", padx=(10, 6))
        self._build_spinbox("Exponent", self.exponent_var)
        self._build_spinbox("Fraction", self.fraction_var)
        tk.Button(
            self,
            text="Add",
            command=self._on_add_click,
            font=BUTTON_FONT,
            bd=1,
            relief="solid",
            cursor="hand2",
        ).pack(side="left", padx=(8, 0))

    def _build_spinbox(self, label: str, variable: tk.StringVar) -> None:
        tk.Label(self, text=label, bg=APP_BG, fg="#22313f", font=UI_FONT).pack(
            side="left", padx=(6, 4)
        )
        tk.Spinbox(
            self,
            from_=0,
            to=32,
            textvariable=variable,
            width=4,
            font=ENTRY_FONT,
        ).pack(side="left")

    def _on_add_click(self) -> None:
        try:
            descriptor = make_custom_format(
                1 if self.sign_var.get() else 0,
                int(self.exponent_var.get()),
                int(self.fraction_var.get()),
            )
        except ValueError as exc:
            self._on_error(str(exc))
            return
        self._on_add(descriptor)


class FloatToyApp(tk.Tk):
    def __init__(self, descriptors: Iterable[FormatDescriptor] | None = None) -> None:
        super().__init__()
        self.title("Float Toy")
        self.geometry("1280x900")
        self.minsize(900, 600)
        self.configure(bg=APP_BG)

        self.blocks: list[FormatBlock] = []
        self.status_var = tk.StringVar(value="Click a bit, or type hex or decimal and press Enter.")

        self._build_ui()
        if descriptors is None:
            descriptors = FLOAT_FORMATS.values()
        for descriptor in descriptors:
            self.add_format(descriptor, removable=descriptor.key not in FLOAT_FORMATS)

        self.bind_all("<Escape>", self._on_escape_quit, add=True)
        self._install_signal_handlers()

    def _build_ui(self) -> None:
        root = tk.Frame(self, bg=APP_BG)
        root.pack(fill="both", expand=True, padx=16, pady=12)

        tk.Label(
            root,
            text="Floating-Point Bit Explorer",
            bg=APP_BG,
            fg="#1d2a38",
            font=("DejaVu Sans", 20, "bold"),
        ).pack(anchor="w")

        self.custom_bar = CustomFormatBar(root, self._on_custom_add, self.status_var.set)
        self.custom_bar.pack(fill="x", pady=(6, 8))

        scroll_host = tk.Frame(root, bg=APP_BG)
        scroll_host.pack(fill="both", expand=True)
        self.canvas = tk.Canvas(scroll_host, bg=APP_BG, bd=0, highlightthickness=0)
        scrollbar = tk.Scrollbar(scroll_host, orient="vertical", command=self.canvas.yview)
        self.canvas.configure(yscrollcommand=scrollbar.set)
        scrollbar.pack(side="right", fill="y")
        self.canvas.pack(side="left", fill="both", expand=True)

        self.blocks_frame = tk.Frame(self.canvas, bg=APP_BG)
        self.window_id = self.canvas.create_window((0, 0), window=self.blocks_frame, anchor="nw")
        self.blocks_frame.bind("<Configure>", self._sync_scroll_region)
        self.canvas.bind("<Configure>", self._sync_window_width)

        tk.Label(
            root,
            textvariable=self.status_var,
            bg=APP_BG,
            fg="#3f5368",
            anchor="w",
            font=UI_FONT,
        ).pack(fill="x", pady=(8, 0))

    def _sync_scroll_region(self, _event: tk.Event) -> None:
        self.canvas.configure(scrollregion=self.canvas.bbox("all"))

    def _sync_window_width(self, event: tk.Event) -> None:
        self.canvas.itemconfigure(self.window_id, width=event.width)

    def _install_signal_handlers(self) -> None:
        def _on_sigint(_signum: int, _frame: object) -> None:
            self.after(0, self._quit_app)

        signal.signal(signal.SIGINT, _on_sigint)

    def add_format(self, descriptor: FormatDescriptor, *, removable: bool = False) -> FormatBlock:
        block = FormatBlock(
            self.blocks_frame,
            FormatEditor(descriptor),
            on_status=self.status_var.set,
            on_remove=self.remove_block if removable else None,
        )
        block.pack(fill="x", pady=6)
        self.blocks.append(block)
        return block

    def remove_block(self, block: FormatBlock) -> None:
        self.blocks.remove(block)
        block.destroy()
        logger.info("Removed format %s", block.editor.descriptor.name)
        self.status_var.set(f"Removed {block.editor.descriptor.name}.")

    def _on_custom_add(self, descriptor: FormatDescriptor) -> None:
        self.add_format(descriptor, removable=True)
        logger.info("Added custom format %s (bias %d)", descriptor.name, descriptor.bias)
        self.status_var.set(f"Added {descriptor.name} with bias {descriptor.bias}.")

    def _quit_app(self) -> None:
        self.quit()
        self.destroy()

    def _on_escape_quit(self, _event: tk.Event) -> str:
        self._quit_app()
        return "break"
