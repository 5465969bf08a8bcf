import tkinter as tk
from tkinter import colorchooser, filedialog, messagebox
from typing import Tuple

import customtkinter as ctk
from PIL import ImageTk

from classroom.helpers.config_helper import ConfigHelper
from classroom.helpers.logging_helper import log_module_import, log_warning
from classroom.whiteboard.models.tool_state import (
    DEFAULT_COLOR,
    DEFAULT_WIDTH,
    MAX_WIDTH,
    MIN_WIDTH,
    DrawingTool,
    ToolState,
)
from classroom.whiteboard.utils.drawing_surface import DrawingSurface
from classroom.whiteboard.utils.uploaded_images import DecodeError

log_module_import(__name__)


class WhiteboardPanel:
    """Tk host for a DrawingSurface: toolbar, pointer events and raster display."""

    def __init__(self, parent, surface: DrawingSurface):
        self.parent = parent
        self.surface = surface
        self.tool_state = ToolState(
            color=str(ConfigHelper.get("Whiteboard", "default_color", fallback=DEFAULT_COLOR) or DEFAULT_COLOR),
        ).with_width(ConfigHelper.getint("Whiteboard", "default_width", fallback=DEFAULT_WIDTH))
        self._photo = None
        self._image_id = None
        self._last_size: Tuple[int, int] = (0, 0)
        self._shown_read_only = None
        self._build_ui()
        self.refresh()

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------
    def _build_ui(self):
        self.toolbar = ctk.CTkFrame(self.parent)
        self.toolbar.pack(fill="x", side="top", padx=6, pady=(2, 4))

        self._edit_controls = ctk.CTkFrame(self.toolbar, fg_color="transparent")
        self._edit_controls.pack(side="left")

        self._tool_menu = ctk.CTkOptionMenu(
            self._edit_controls,
            values=["Pen", "Eraser"],
            command=self._on_tool_change,
            width=100,
        )
        self._tool_menu.set("Pen")
        self._tool_menu.pack(side="left", padx=(0, 6))

        self._color_button = ctk.CTkButton(
            self._edit_controls,
            text="",
            width=28,
            fg_color=self.tool_state.color,
            hover_color=self.tool_state.color,
            command=self._on_pick_color,
        )
        self._color_button.pack(side="left", padx=(0, 6))

        self._width_slider = ctk.CTkSlider(
            self._edit_controls,
            from_=MIN_WIDTH,
            to=MAX_WIDTH,
            number_of_steps=MAX_WIDTH - MIN_WIDTH,
            width=120,
            command=self._on_width_change,
        )
        self._width_slider.set(self.tool_state.base_width)
        self._width_slider.pack(side="left", padx=(0, 6))

        ctk.CTkButton(self._edit_controls, text="Insert Image", width=100, command=self._on_insert_image).pack(
            side="left", padx=(0, 6)
        )
        ctk.CTkButton(
            self._edit_controls,
            text="Clear All",
            width=80,
            fg_color="#fee2e2",
            text_color="#b91c1c",
            hover_color="#fecaca",
            command=self._on_clear,
        ).pack(side="left", padx=(0, 6))

        self._view_only_label = ctk.CTkLabel(
            self.toolbar,
            text="View Only",
            fg_color="#fef9c3",
            text_color="#854d0e",
            corner_radius=6,
        )

        self.canvas = tk.Canvas(self.parent, bg="white", highlightthickness=0)
        self.canvas.pack(fill="both", expand=True)
        self.canvas.bind("<ButtonPress-1>", self._on_mouse_down)
        self.canvas.bind("<B1-Motion>", self._on_mouse_move)
        self.canvas.bind("<ButtonRelease-1>", self._on_mouse_up)
        self.canvas.bind("<Leave>", self._on_pointer_leave)
        self.canvas.bind("<Configure>", self._on_canvas_resize)

    # ------------------------------------------------------------------
    # Toolbar handlers
    # ------------------------------------------------------------------
    def _on_tool_change(self, selection: str):
        self.tool_state = self.tool_state.with_tool(selection.lower())
        self.canvas.configure(cursor="dotbox" if self.tool_state.tool == DrawingTool.ERASER else "crosshair")

    def _on_pick_color(self):
        result = colorchooser.askcolor(color=self.tool_state.color)
        if result and result[1]:
            self.tool_state = self.tool_state.with_color(result[1])
            self._color_button.configure(fg_color=self.tool_state.color, hover_color=self.tool_state.color)

    def _on_width_change(self, value):
        self.tool_state = self.tool_state.with_width(value)

    def _on_insert_image(self):
        selection = filedialog.askopenfilename(
            title="Insert Image",
            filetypes=[
                ("Image files", "*.png *.jpg *.jpeg *.gif *.bmp *.webp"),
                ("All files", "*.*"),
            ],
        )
        if not selection:
            return
        try:
            with open(selection, "rb") as fh:
                data = fh.read()
            self.surface.insert_image(data)
        except (OSError, DecodeError) as exc:
            log_warning(f"Unable to insert image: {exc}", func_name="WhiteboardPanel._on_insert_image")
            messagebox.showerror("Insert Image", f"Unable to insert image:\n{exc}")
            return
        self.refresh()

    def _on_clear(self):
        if self.surface.clear():
            self.refresh()

    # ------------------------------------------------------------------
    # Pointer handlers
    # ------------------------------------------------------------------
    def _on_mouse_down(self, event):
        self.surface.begin_stroke((event.x, event.y), self.tool_state)

    def _on_mouse_move(self, event):
        if self.surface.extend_stroke((event.x, event.y), self.tool_state):
            self.refresh()

    def _on_mouse_up(self, _event):
        self.surface.end_stroke()

    def _on_pointer_leave(self, _event):
        self.surface.pointer_leave()

    def _on_canvas_resize(self, event):
        new_size = (max(1, int(event.width)), max(1, int(event.height)))
        if new_size == self._last_size:
            return
        self._last_size = new_size
        # resizing wipes the board, same as the browser canvas
        self.surface.initialize(*new_size)
        self.refresh()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def refresh(self):
        self._update_read_only_controls()
        self._photo = ImageTk.PhotoImage(self.surface.image)
        if self._image_id is None:
            self._image_id = self.canvas.create_image(0, 0, image=self._photo, anchor="nw")
        else:
            self.canvas.itemconfigure(self._image_id, image=self._photo)

    def _update_read_only_controls(self):
        read_only = self.surface.read_only
        if read_only == self._shown_read_only:
            return
        self._shown_read_only = read_only
        if read_only:
            self._edit_controls.pack_forget()
            self._view_only_label.pack(side="left", padx=6, pady=2)
            self.canvas.configure(cursor="arrow")
        else:
            self._view_only_label.pack_forget()
            self._edit_controls.pack(side="left")
            self.canvas.configure(cursor="crosshair")
