from __future__ import annotations
"""Tkinter-based UI for the bucket browser application."""
import tkinter as tk
from tkinter import messagebox, ttk

from .models import Entry
from .presenter import BucketBrowserPresenter
from .profiles import BucketProfile
from .settings import AppSettings
from .ui_utils import format_date, format_size, icon_for

COLUMNS = ("size", "modified")


class BucketBrowserApp:
    """Tkinter view that forwards user actions to :class:`BucketBrowserPresenter`."""

    def __init__(self, root: tk.Tk, presenter: BucketBrowserPresenter | None = None):
        self.root = root
        self.root.title("Bucket Browser")
        self.root.geometry("720x640")
        self.root.minsize(420, 360)

        self.presenter = presenter or BucketBrowserPresenter(dispatch=lambda func: self.root.after(0, func))
        self._entries_by_item: dict[str, Entry] = {}
        self.search_var = tk.StringVar()
        self.location_var = tk.StringVar()
        self.status_var = tk.StringVar(value="Ready")
        self._settings_window: tk.Toplevel | None = None

        self._create_menu()
        self._create_widgets()
        self.search_var.trace_add("write", lambda *_: self._on_search_changed())
        self.presenter.load(self.presenter.initial_prefix(), on_changed=self.render, on_error=self._show_error)

    def _create_menu(self) -> None:
        menubar = tk.Menu(self.root)

        file_menu = tk.Menu(menubar, tearoff=0)
        file_menu.add_command(label="Open", command=self._open_selected)
        file_menu.add_command(label="Copy URL", command=self._copy_selected_url)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.root.destroy)
        menubar.add_cascade(label="File", menu=file_menu)

        go_menu = tk.Menu(menubar, tearoff=0)
        go_menu.add_command(label="Refresh", command=self.refresh)
        go_menu.add_command(label="Parent Folder", command=self.open_parent)
        go_menu.add_command(label="Root", command=self.open_root)
        menubar.add_cascade(label="Go", menu=go_menu)

        options_menu = tk.Menu(menubar, tearoff=0)
        options_menu.add_command(label="Settings...", command=self.open_settings_dialog)
        options_menu.add_command(label="Connection...", command=self.open_connection_dialog)
        menubar.add_cascade(label="Options", menu=options_menu)

        help_menu = tk.Menu(menubar, tearoff=0)
        help_menu.add_command(label="About", command=self.show_about_dialog)
        menubar.add_cascade(label="Help", menu=help_menu)

        self.root.config(menu=menubar)

    def _create_widgets(self) -> None:
        main_frame = ttk.Frame(self.root, padding="10")
        main_frame.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))
        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(0, weight=1)
        main_frame.columnconfigure(0, weight=1)
        main_frame.rowconfigure(2, weight=1)

        toolbar = ttk.Frame(main_frame)
        toolbar.grid(row=0, column=0, sticky=(tk.W, tk.E))
        toolbar.columnconfigure(3, weight=1)
        ttk.Button(toolbar, text="Root", command=self.open_root).grid(row=0, column=0, padx=(0, 5))
        ttk.Button(toolbar, text="Up", command=self.open_parent).grid(row=0, column=1, padx=(0, 5))
        ttk.Button(toolbar, text="Refresh", command=self.refresh).grid(row=0, column=2, padx=(0, 5))
        ttk.Label(toolbar, textvariable=self.location_var, anchor=tk.W).grid(row=0, column=3, sticky=(tk.W, tk.E))

        search_frame = ttk.Frame(main_frame)
        search_frame.grid(row=1, column=0, sticky=(tk.W, tk.E), pady=(10, 5))
        search_frame.columnconfigure(1, weight=1)
        ttk.Label(search_frame, text="Search:").grid(row=0, column=0, sticky=tk.W)
        ttk.Entry(search_frame, textvariable=self.search_var).grid(row=0, column=1, sticky=(tk.W, tk.E), padx=(5, 0))

        tree_frame = ttk.Frame(main_frame)
        tree_frame.grid(row=2, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))
        tree_frame.columnconfigure(0, weight=1)
        tree_frame.rowconfigure(0, weight=1)

        self.results_tree = ttk.Treeview(tree_frame, columns=COLUMNS, selectmode="browse")
        self.results_tree.heading("#0", text="Name")
        self.results_tree.heading("size", text="Size")
        self.results_tree.heading("modified", text="Last Modified")
        self.results_tree.column("size", width=90, anchor=tk.E, stretch=False)
        self.results_tree.column("modified", width=140, stretch=False)
        self.results_tree.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))
        tree_scroll_y = ttk.Scrollbar(tree_frame, orient="vertical", command=self.results_tree.yview)
        tree_scroll_y.grid(row=0, column=1, sticky=(tk.N, tk.S))
        self.results_tree.configure(yscrollcommand=tree_scroll_y.set)
        self.results_tree.bind("<Double-1>", lambda _: self._open_selected())
        self.results_tree.bind("<Return>", lambda _: self._open_selected())

        self.load_more_button = ttk.Button(main_frame, text="Load More", command=self.load_more)
        self.load_more_button.grid(row=3, column=0, sticky=tk.E, pady=(5, 0))

        self.progress = ttk.Progressbar(main_frame, mode="indeterminate")
        self.progress.grid(row=4, column=0, sticky=(tk.W, tk.E), pady=5)

        ttk.Label(main_frame, textvariable=self.status_var, anchor=tk.W).grid(row=5, column=0, sticky=(tk.W, tk.E))

    def render(self) -> None:
        store = self.presenter.store
        profile = self.presenter.profile
        self.location_var.set(f"{profile.bucket}/{store.current_prefix}")

        self.results_tree.delete(*self.results_tree.get_children())
        self._entries_by_item.clear()
        for entry in store.filtered_entries:
            item_id = self.results_tree.insert(
                "",
                tk.END,
                text=f"{icon_for(entry.key)} {entry.name}",
                values=("" if entry.is_folder else format_size(entry.size), format_date(entry.last_modified)),
            )
            self._entries_by_item[item_id] = entry

        if store.loading:
            self.progress.start()
            self.status_var.set("Loading...")
        else:
            self.progress.stop()
            source = "live" if self.presenter.store.service.is_live else "offline data"
            self.status_var.set(f"{store.total_count} item(s), {store.formatted_total_size} ({source})")
        self.load_more_button.configure(state="normal" if store.can_load_more else "disabled")

    def refresh(self) -> None:
        self.presenter.refresh(on_changed=self.render, on_error=self._show_error)

    def open_parent(self) -> None:
        self.presenter.open_parent(on_changed=self.render, on_error=self._show_error)

    def open_root(self) -> None:
        self.presenter.open_root(on_changed=self.render, on_error=self._show_error)

    def load_more(self) -> None:
        self.presenter.load_more(on_changed=self.render, on_error=self._show_error)

    def show_about_dialog(self) -> None:
        info = self.presenter.package_info
        lines = [f"{info.name} {info.version}".strip(), info.summary]
        if info.homepage:
            lines.append(info.homepage)
        messagebox.showinfo("About", "\n".join(line for line in lines if line))

    def open_settings_dialog(self) -> None:
        if self._settings_window and self._settings_window.winfo_exists():
            self._settings_window.lift()
            return

        window = tk.Toplevel(self.root)
        window.title("Settings")
        window.resizable(False, False)
        window.transient(self.root)
        window.grab_set()

        frame = ttk.Frame(window, padding=20)
        frame.pack(fill=tk.BOTH, expand=True)

        current = self.presenter.settings
        fetch_limit_var = tk.StringVar(value=str(current.fetch_limit))
        timeout_var = tk.StringVar(value=str(current.request_timeout))
        remember_var = tk.BooleanVar(value=current.remember_last_prefix)

        ttk.Label(frame, text="Fetch limit:").grid(row=0, column=0, sticky=tk.W, pady=(0, 10))
        entry = ttk.Entry(frame, textvariable=fetch_limit_var, width=10, justify="right")
        entry.grid(row=0, column=1, sticky=tk.W, pady=(0, 10), padx=(5, 0))

        ttk.Label(frame, text="Request timeout (s):").grid(row=1, column=0, sticky=tk.W, pady=(0, 10))
        ttk.Entry(frame, textvariable=timeout_var, width=10, justify="right").grid(
            row=1, column=1, sticky=tk.W, pady=(0, 10), padx=(5, 0)
        )

        ttk.Checkbutton(frame, text="Reopen the last folder on start", variable=remember_var).grid(
            row=2, column=0, columnspan=2, sticky=tk.W, pady=(0, 10)
        )

        buttons = ttk.Frame(frame)
        buttons.grid(row=3, column=0, columnspan=2, pady=(5, 0), sticky=tk.E)

        def save_settings() -> None:
            try:
                fetch_limit = int(fetch_limit_var.get().strip())
                request_timeout = int(timeout_var.get().strip())
            except ValueError:
                messagebox.showerror("Error", "Fetch limit and timeout must be whole numbers", parent=window)
                return
            if fetch_limit <= 0 or request_timeout <= 0:
                messagebox.showerror("Error", "Fetch limit and timeout must be greater than zero", parent=window)
                return
            self.presenter.save_settings(
                AppSettings(
                    fetch_limit=fetch_limit,
                    request_timeout=request_timeout,
                    remember_last_prefix=remember_var.get(),
                    last_prefix=current.last_prefix,
                )
            )
            self._close_settings_window()
            self.refresh()

        ttk.Button(buttons, text="Save", command=save_settings).grid(row=0, column=0, padx=(0, 5))
        ttk.Button(buttons, text="Cancel", command=self._close_settings_window).grid(row=0, column=1)

        entry.focus()
        self._settings_window = window
        window.protocol("WM_DELETE_WINDOW", self._close_settings_window)

    def _close_settings_window(self) -> None:
        if self._settings_window and self._settings_window.winfo_exists():
            self._settings_window.destroy()
        self._settings_window = None

    def open_connection_dialog(self) -> None:
        dialog = ConnectionDialog(self.root, title="Connection", profile=self.presenter.stored_profile())
        profile = dialog.show()
        if profile is None:
            return
        self.presenter.save_profile(profile)
        self.open_root()

    def _on_search_changed(self) -> None:
        self.presenter.set_search_query(self.search_var.get(), on_changed=self.render)

    def _selected_entry(self) -> Entry | None:
        selection = self.results_tree.selection()
        if not selection:
            return None
        return self._entries_by_item.get(selection[0])

    def _open_selected(self) -> None:
        entry = self._selected_entry()
        if entry is None:
            return
        self.presenter.open_entry(entry, on_changed=self.render, on_error=self._show_error)

    def _copy_selected_url(self) -> None:
        entry = self._selected_entry()
        if entry is None:
            messagebox.showerror("Error", "Please select an item first")
            return
        self.root.clipboard_clear()
        self.root.clipboard_append(self.presenter.copy_url(entry))
        self.status_var.set(f"Copied URL of {entry.name}")

    def _show_error(self, message: str) -> None:
        self.presenter.store.clear_error()
        messagebox.showerror("Error", message)


class ConnectionDialog:
    """Modal dialog for editing the bucket connection profile."""

    def __init__(self, parent: tk.Tk, *, title: str, profile: BucketProfile):
        self.parent = parent
        self.result: BucketProfile | None = None

        self.top = tk.Toplevel(parent)
        self.top.title(title)
        self.top.transient(parent)
        self.top.resizable(False, False)
        self.top.grab_set()

        content = ttk.Frame(self.top, padding="10")
        content.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))

        self.endpoint_var = tk.StringVar(value=profile.endpoint_url)
        self.region_var = tk.StringVar(value=profile.region)
        self.bucket_var = tk.StringVar(value=profile.bucket)
        self.access_key_var = tk.StringVar(value=profile.access_key)
        self.secret_key_var = tk.StringVar(value=profile.secret_key)

        fields = (
            ("Endpoint URL:", self.endpoint_var, ""),
            ("Region:", self.region_var, ""),
            ("Bucket:", self.bucket_var, ""),
            ("Access Key ID:", self.access_key_var, ""),
            ("Secret Access Key:", self.secret_key_var, "*"),
        )
        for row, (label, variable, show) in enumerate(fields):
            ttk.Label(content, text=label).grid(row=row, column=0, sticky=tk.W, pady=2)
            ttk.Entry(content, textvariable=variable, width=40, show=show).grid(
                row=row, column=1, sticky=(tk.W, tk.E), pady=2
            )

        ttk.Label(content, text="Leave both keys empty to browse offline data.").grid(
            row=len(fields), column=0, columnspan=2, sticky=tk.W, pady=(5, 0)
        )

        buttons = ttk.Frame(content)
        buttons.grid(row=len(fields) + 1, column=0, columnspan=2, pady=(10, 0), sticky=tk.E)
        ttk.Button(buttons, text="Save", command=self._on_save).grid(row=0, column=0, padx=5)
        ttk.Button(buttons, text="Cancel", command=self._on_cancel).grid(row=0, column=1, padx=5)

        self.top.protocol("WM_DELETE_WINDOW", self._on_cancel)

    def show(self) -> BucketProfile | None:
        self.parent.wait_window(self.top)
        return self.result

    def _on_save(self) -> None:
        endpoint_url = self.endpoint_var.get().strip()
        region = self.region_var.get().strip()
        bucket = self.bucket_var.get().strip()
        if not all([endpoint_url, region, bucket]):
            messagebox.showerror("Error", "Endpoint URL, region and bucket are required", parent=self.top)
            return
        access_key = self.access_key_var.get().strip()
        secret_key = self.secret_key_var.get().strip()
        if bool(access_key) != bool(secret_key):
            messagebox.showerror("Error", "Enter both keys or neither", parent=self.top)
            return
        self.result = BucketProfile(
            endpoint_url=endpoint_url,
            region=region,
            bucket=bucket,
            access_key=access_key,
            secret_key=secret_key,
        )
        self.top.destroy()

    def _on_cancel(self) -> None:
        self.result = None
        self.top.destroy()
