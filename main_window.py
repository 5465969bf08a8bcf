import threading

import customtkinter as ctk
from tkinter import messagebox

from classroom.helpers.config_helper import ConfigHelper
from classroom.helpers.logging_helper import (
    initialize_logging,
    log_exception,
    log_info,
    log_module_import,
)
from classroom.live import create_live_session
from classroom.live.errors import BroadcastNotAllowed, MediaCaptureError
from classroom.live.models import BroadcastMode, BroadcastPhase, PermissionKind, UserRole
from classroom.whiteboard.services.surface_registry import SurfaceRegistry
from classroom.whiteboard.utils.drawing_surface import DrawingSurface
from classroom.whiteboard.views.web_classroom_view import (
    close_classroom_display,
    open_classroom_display,
)
from classroom.whiteboard.views.whiteboard_panel import WhiteboardPanel

initialize_logging()
log_module_import(__name__)


class MainWindow(ctk.CTk):
    def __init__(self):
        super().__init__()

        log_info("Initializing MainWindow", func_name="main_window.MainWindow.__init__")

        self.coordinator, self.poller = create_live_session()
        self.participant = self.coordinator.participant
        self.surface = DrawingSurface()
        self.surface_registry = SurfaceRegistry()
        self.coordinator.attach_surface(self.surface)
        self.coordinator.add_listener(self._on_coordinator_event)

        self.title(f"Live Classroom - {self.participant.name or self.participant.id}")
        self.geometry("1280x800")
        self.minsize(960, 640)

        self.create_layout()
        self._refresh_live_controls()

        self.poller.start()
        if ConfigHelper.getboolean("LiveServer", "enabled", fallback=False):
            open_classroom_display(self)
        self.protocol("WM_DELETE_WINDOW", self._on_close)

    @property
    def is_owner(self) -> bool:
        return self.participant.role in (UserRole.TEACHER, UserRole.ADMIN)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def create_layout(self):
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(0, weight=1)

        self.stage = ctk.CTkFrame(self)
        self.stage.grid(row=0, column=0, sticky="nsew", padx=(10, 5), pady=(10, 5))

        self.mode_picker = ctk.CTkFrame(self.stage, fg_color="transparent")
        ctk.CTkLabel(self.mode_picker, text="Select a broadcast mode to begin the session.").pack(pady=(40, 20))
        ctk.CTkButton(
            self.mode_picker, text="Camera Mode", command=lambda: self.start_session(BroadcastMode.VIDEO)
        ).pack(pady=6)
        ctk.CTkButton(
            self.mode_picker, text="Whiteboard Mode", command=lambda: self.start_session(BroadcastMode.WHITEBOARD)
        ).pack(pady=6)

        self.offline_label = ctk.CTkLabel(self.stage, text="No live session right now.")
        self.camera_label = ctk.CTkLabel(self.stage, text="Camera Paused", font=ctk.CTkFont(size=20))

        self.whiteboard_frame = ctk.CTkFrame(self.stage, fg_color="transparent")
        self.whiteboard_panel = WhiteboardPanel(self.whiteboard_frame, self.surface)

        self.sidebar = ctk.CTkFrame(self, width=260)
        self.sidebar.grid(row=0, column=1, rowspan=2, sticky="ns", padx=(5, 10), pady=10)
        self.status_label = ctk.CTkLabel(self.sidebar, text="Offline", font=ctk.CTkFont(weight="bold"))
        self.status_label.pack(pady=(10, 6), padx=10)
        self.hands_frame = ctk.CTkScrollableFrame(self.sidebar, label_text="Hands Raised", width=240)
        self.hands_frame.pack(fill="both", expand=True, padx=6, pady=6)
        self.raise_button = ctk.CTkButton(self.sidebar, text="Raise Hand", command=self.raise_hand)

        self.control_bar = ctk.CTkFrame(self, height=60)
        self.control_bar.grid(row=1, column=0, sticky="ew", padx=(10, 5), pady=(5, 10))
        self.mic_button = ctk.CTkButton(self.control_bar, text="Mic", width=90, command=self.toggle_microphone)
        self.cam_button = ctk.CTkButton(self.control_bar, text="Camera", width=90, command=self.toggle_camera)
        self.end_button = ctk.CTkButton(
            self.control_bar,
            text="END STREAM",
            fg_color="#dc2626",
            hover_color="#b91c1c",
            command=self.end_session,
        )
        self.watching_label = ctk.CTkLabel(self.control_bar, text="You are watching the live session")

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def _run_in_background(self, action, error_title: str, *errors):
        # store requests block, keep them off the Tk thread
        def worker():
            try:
                action()
            except errors as exc:
                message = str(exc)
                self.after(0, lambda: messagebox.showerror(error_title, message))

        threading.Thread(target=worker, name="classroom-live-action", daemon=True).start()

    def start_session(self, mode: BroadcastMode):
        self._run_in_background(
            lambda: self.coordinator.start_session(mode),
            "Live Session",
            MediaCaptureError,
            BroadcastNotAllowed,
        )

    def end_session(self):
        self._run_in_background(self.coordinator.end_session, "Live Session")

    def toggle_microphone(self):
        self.coordinator.toggle_microphone()

    def toggle_camera(self):
        try:
            self.coordinator.toggle_camera()
        except MediaCaptureError as exc:
            messagebox.showerror("Camera", f"Could not access camera.\n{exc}")

    def raise_hand(self):
        self.coordinator.raise_hand()
        self.raise_button.configure(text="Hand Raised", state="disabled")

    def grant(self, participant_id: str, kind: PermissionKind):
        self.coordinator.grant_permission(participant_id, kind)

    # ------------------------------------------------------------------
    # State rendering
    # ------------------------------------------------------------------
    def _on_coordinator_event(self, _event: str, _payload: dict):
        # poller ticks and web requests may arrive off the Tk thread
        self.after(0, self._refresh_live_controls)

    def _refresh_live_controls(self):
        state = self.coordinator.state
        for widget in (self.mode_picker, self.offline_label, self.camera_label, self.whiteboard_frame):
            widget.pack_forget()
        for widget in (self.mic_button, self.cam_button, self.end_button, self.watching_label):
            widget.pack_forget()
        self.raise_button.pack_forget()

        if not state.is_live:
            self.status_label.configure(text="Offline")
            if self.is_owner:
                self.mode_picker.pack(fill="both", expand=True)
            else:
                self.offline_label.pack(fill="both", expand=True)
            # a new session starts with no hands raised
            self.raise_button.configure(text="Raise Hand", state="normal")
        else:
            phase = "Starting..." if state.phase == BroadcastPhase.STARTING else "LIVE"
            self.status_label.configure(text=f"{phase} - {state.mode.value}")
            if state.mode == BroadcastMode.WHITEBOARD:
                self.whiteboard_frame.pack(fill="both", expand=True)
                self.whiteboard_panel.refresh()
            else:
                self.camera_label.configure(text="Camera On" if state.camera_on else "Camera Paused")
                self.camera_label.pack(fill="both", expand=True)

            if self.is_owner:
                self.mic_button.configure(text="Mic On" if state.mic_on else "Mic Off")
                self.cam_button.configure(text="Camera On" if state.camera_on else "Camera Off")
                self.mic_button.pack(side="left", padx=6, pady=10)
                self.cam_button.pack(side="left", padx=6, pady=10)
                self.end_button.pack(side="right", padx=10, pady=10)
            else:
                self.watching_label.pack(pady=10)
                self.raise_button.pack(pady=10, padx=10)

        self._refresh_hands()

    def _refresh_hands(self):
        for child in self.hands_frame.winfo_children():
            child.destroy()
        if not self.is_owner:
            return
        for participant_id in self.coordinator.permissions.raised_hands:
            row = ctk.CTkFrame(self.hands_frame)
            row.pack(fill="x", pady=2)
            ctk.CTkLabel(row, text=participant_id).pack(side="left", padx=6)
            ctk.CTkButton(
                row, text="Board", width=56, command=lambda pid=participant_id: self.grant(pid, PermissionKind.DRAW)
            ).pack(side="right", padx=2)
            ctk.CTkButton(
                row, text="Mic", width=48, command=lambda pid=participant_id: self.grant(pid, PermissionKind.SPEAK)
            ).pack(side="right", padx=2)

    def _on_close(self):
        try:
            self.poller.stop()
            self.coordinator.end_session()
            close_classroom_display(self)
        except Exception:
            log_exception("Error while shutting down the live session")
        finally:
            self.destroy()


if __name__ == "__main__":
    app = MainWindow()
    app.mainloop()
