"""
Service Manager Page

Route: /
"""

import reflex as rx

from servicemanager.state import ServiceManagerState


def service_manager_page() -> rx.Component:
    """Folder creation when no folder is active, folder details otherwise."""
    return rx.box(
        rx.vstack(
            _header(),
            rx.cond(
                ServiceManagerState.message != "",
                rx.callout(ServiceManagerState.message, icon="info", color_scheme="blue", width="100%"),
            ),
            rx.cond(
                ServiceManagerState.has_folder,
                _folder_details(),
                _create_folder_card(),
            ),
            spacing="5",
            width="100%",
            max_width="56rem",
            margin_x="auto",
        ),
        min_height="100vh",
        padding="4",
        background="linear-gradient(135deg, var(--blue-2), var(--indigo-3))",
    )


def _header() -> rx.Component:
    return rx.vstack(
        rx.heading("Service Manager", size="8"),
        rx.text("Create and manage your service folders easily", color="gray"),
        align="center",
        padding_y="6",
        width="100%",
    )


def _create_folder_card() -> rx.Component:
    return rx.card(
        rx.vstack(
            rx.hstack(rx.icon("folder-plus", size=18), rx.heading("Create a new folder", size="4")),
            _labeled(
                "Folder name",
                rx.input(
                    value=ServiceManagerState.folder_name,
                    on_change=ServiceManagerState.set_folder_name,
                    placeholder="Enter folder name...",
                    width="100%",
                ),
            ),
            rx.button(
                rx.cond(ServiceManagerState.loading, "Creating...", "Create folder"),
                on_click=ServiceManagerState.create_folder,
                disabled=ServiceManagerState.loading,
                width="100%",
            ),
            rx.divider(),
            _labeled(
                "Open an existing folder",
                rx.hstack(
                    rx.input(
                        value=ServiceManagerState.fetch_id,
                        on_change=ServiceManagerState.set_fetch_id,
                        placeholder="Folder ID...",
                        flex="1",
                    ),
                    rx.button(
                        rx.cond(ServiceManagerState.loading, "Loading...", "Fetch"),
                        on_click=ServiceManagerState.fetch_folder,
                        disabled=ServiceManagerState.loading,
                        variant="outline",
                    ),
                    width="100%",
                ),
            ),
            spacing="4",
            width="100%",
        ),
        width="100%",
    )


def _folder_details() -> rx.Component:
    return rx.vstack(
        rx.card(
            rx.hstack(
                rx.hstack(rx.icon("folder", size=18), rx.heading(ServiceManagerState.folder_title, size="4")),
                rx.spacer(),
                rx.text("ID: ", ServiceManagerState.folder_id, size="2", color="gray"),
                width="100%",
                align="center",
            ),
            width="100%",
        ),
        _add_service_card(),
        rx.cond(ServiceManagerState.has_services, _services_card()),
        rx.center(
            rx.button(
                "Create a new folder",
                on_click=ServiceManagerState.reset_session,
                variant="outline",
            ),
            width="100%",
        ),
        spacing="5",
        width="100%",
    )


def _add_service_card() -> rx.Component:
    return rx.card(
        rx.vstack(
            rx.hstack(rx.icon("plus", size=18), rx.heading("Add a service", size="4")),
            _labeled(
                "Service title",
                rx.input(
                    value=ServiceManagerState.service_title,
                    on_change=ServiceManagerState.set_service_title,
                    placeholder="Service title...",
                    width="100%",
                ),
            ),
            _labeled(
                "Description",
                rx.text_area(
                    value=ServiceManagerState.service_description,
                    on_change=ServiceManagerState.set_service_description,
                    placeholder="Detailed service description...",
                    rows="4",
                    width="100%",
                ),
            ),
            rx.button("Add service", on_click=ServiceManagerState.add_service, width="100%"),
            spacing="4",
            width="100%",
        ),
        width="100%",
    )


def _services_card() -> rx.Component:
    return rx.card(
        rx.vstack(
            rx.hstack(
                rx.heading("Services (", ServiceManagerState.service_count, ")", size="4"),
                rx.spacer(),
                rx.button(
                    rx.icon("save", size=16),
                    rx.cond(ServiceManagerState.loading, "Saving...", "Save"),
                    on_click=ServiceManagerState.save_services,
                    disabled=ServiceManagerState.loading,
                    size="2",
                    variant="soft",
                ),
                width="100%",
                align="center",
            ),
            rx.foreach(ServiceManagerState.services, _service_row),
            spacing="3",
            width="100%",
        ),
        width="100%",
    )


def _service_row(service: dict, index: int) -> rx.Component:
    """Render one service, numbered from 1."""
    return rx.hstack(
        rx.vstack(
            rx.text(index + 1, ". ", service["title"], weight="bold"),
            rx.text(service["description"], size="2", color="gray"),
            spacing="1",
            flex="1",
        ),
        rx.button(
            rx.icon("trash-2", size=16),
            on_click=ServiceManagerState.delete_service(service["id"]),
            color_scheme="red",
            size="1",
        ),
        width="100%",
        padding="3",
        border="1px solid var(--gray-5)",
        border_radius="8px",
        align="start",
    )


def _labeled(label: str, control: rx.Component) -> rx.Component:
    return rx.vstack(
        rx.text(label, size="2", weight="bold"),
        control,
        spacing="1",
        width="100%",
    )
