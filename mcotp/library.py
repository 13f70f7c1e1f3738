"""
Library browsing.

Presents the catalog as a tree of browsable items addressed by external id:

    root
    ├── bands            all bands by name
    ├── grouped-bands    initial letters -> bands
    ├── years            decades -> years
    └── locations        locations -> sub-locations and bands

A band's children are its albums followed by its album-less songs; an album's
children are its tracks.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .background import BackgroundRunner
from .catalog import CatalogService
from .ids import (
    ALBUM_PREFIX,
    BAND_PREFIX,
    DECADE_PREFIX,
    GROUP_PREFIX,
    LOCATION_PREFIX,
    SONG_PREFIX,
    YEAR_PREFIX,
    InvalidExternalId,
    external_id,
    split_id,
)
from .models import Album, Band, Location, Song

ROOT_ID = "root"
BANDS_ID = "bands"
GROUPED_BANDS_ID = "grouped-bands"
YEARS_ID = "years"
LOCATIONS_ID = "locations"


@dataclass
class LibraryItem:
    """One entry in a browse listing."""

    media_id: str
    title: str
    browsable: bool
    playable: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class UnknownLibraryItem(LookupError):
    """Raised when browsing an id the library doesn't know."""


_CATEGORIES = [
    LibraryItem(BANDS_ID, "Bands", True, False),
    LibraryItem(GROUPED_BANDS_ID, "Bands by Letter", True, False),
    LibraryItem(YEARS_ID, "Years", True, False),
    LibraryItem(LOCATIONS_ID, "Locations", True, False),
]


def _band_item(band: Band) -> LibraryItem:
    return LibraryItem(external_id(BAND_PREFIX, band.id), band.name, True, True)


def _album_item(album: Album) -> LibraryItem:
    title = f"{album.name} ({album.year})" if album.year else album.name
    return LibraryItem(external_id(ALBUM_PREFIX, album.id), title, True, True)


def _song_item(song: Song) -> LibraryItem:
    return LibraryItem(external_id(SONG_PREFIX, song.id), song.name, False, True)


def _location_item(location: Location, band_count: int) -> LibraryItem:
    return LibraryItem(
        external_id(LOCATION_PREFIX, location.id),
        f"{location.name} ({band_count})",
        True,
        True,
    )


class LibraryBrowser:
    """Builds browse listings from the catalog."""

    def __init__(self, catalog: CatalogService):
        self.catalog = catalog
        self.logger = logging.getLogger(__name__)

    def get_children(self, parent_id: str) -> List[LibraryItem]:
        """
        List the children of a browse node.

        Raises:
            UnknownLibraryItem: If parent_id is not a browsable node
        """
        if parent_id == ROOT_ID:
            return list(_CATEGORIES)
        if parent_id == BANDS_ID:
            return [_band_item(b) for b in self.catalog.bands.get_all()]
        if parent_id == GROUPED_BANDS_ID:
            return [
                LibraryItem(external_id(GROUP_PREFIX, letter), letter, True, False)
                for letter in self.catalog.bands.get_initial_letters()
            ]
        if parent_id == YEARS_ID:
            return [
                LibraryItem(external_id(DECADE_PREFIX, decade), f"{decade}s", True, True)
                for decade in self.catalog.get_decades()
            ]
        if parent_id == LOCATIONS_ID:
            locations, _ = self._sublocations_and_bands(None)
            return locations

        try:
            prefix, raw = split_id(parent_id)
        except InvalidExternalId:
            raise UnknownLibraryItem(parent_id) from None

        if prefix == GROUP_PREFIX:
            return [_band_item(b) for b in self.catalog.bands.get_starting_with(raw)]

        try:
            internal_id = int(raw)
        except ValueError:
            raise UnknownLibraryItem(parent_id) from None

        if prefix == DECADE_PREFIX:
            return [
                LibraryItem(external_id(YEAR_PREFIX, year), str(year), False, True)
                for year in self.catalog.get_years_for_decade(internal_id)
            ]
        if prefix == LOCATION_PREFIX:
            locations, bands = self._sublocations_and_bands(internal_id)
            return locations + bands
        if prefix == BAND_PREFIX:
            albums = [_album_item(a) for a in self.catalog.albums.get_all_for_band(internal_id)]
            songs = [_song_item(s) for s in self.catalog.songs.get_loose_for_band(internal_id)]
            return albums + songs
        if prefix == ALBUM_PREFIX:
            return [_song_item(s) for s in self.catalog.get_songs_for_album(internal_id)]
        raise UnknownLibraryItem(parent_id)

    def _sublocations_and_bands(self, location_id: Optional[int]):
        """
        Split a location's children into displayed sub-locations and bands.

        A sub-location is only shown when it has at least two bands and at
        least one sibling also has two or more. Otherwise its bands are
        hoisted up to show directly under the parent.
        """
        if location_id is None:
            sublocations = self.catalog.locations.get_top_level()
        else:
            sublocations = self.catalog.locations.get_children(location_id)

        with_bands = []
        for sublocation in sublocations:
            descendants = self.catalog.get_descendant_location_ids(sublocation.id)
            with_bands.append((sublocation, self.catalog.get_band_ids_for_locations(descendants)))

        full = [(loc, ids) for loc, ids in with_bands if len(ids) > 1]
        sparse = [(loc, ids) for loc, ids in with_bands if len(ids) <= 1]

        band_ids: List[int] = []
        if len(full) < 2:
            shown = []
            for _, ids in full + sparse:
                band_ids.extend(ids)
        else:
            shown = full
            for _, ids in sparse:
                band_ids.extend(ids)

        if location_id is not None:
            band_ids.extend(self.catalog.get_band_ids_for_locations([location_id]))

        location_items = [
            _location_item(loc, len(ids)) for loc, ids in sorted(shown, key=lambda pair: pair[0].name)
        ]
        band_items = [_band_item(b) for b in self.catalog.bands.get_many(sorted(set(band_ids)))]
        return location_items, band_items


@dataclass
class NavigationResult:
    """Where a navigation task ended up."""

    breadcrumbs: List[str]
    current_id: Optional[str]
    children: List[LibraryItem]
    focus_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "breadcrumbs": list(self.breadcrumbs),
            "current_id": self.current_id,
            "children": [c.to_dict() for c in self.children],
            "focus_index": self.focus_index,
        }


@dataclass
class NavigationTask:
    """
    Walk down a list of parent ids, then find a focus child in the final listing.

    Each step browses one level. The remaining steps are kept explicitly so
    the walk can run one step at a time on a background worker.
    """

    browser: LibraryBrowser
    remaining: List[str]
    focus_id: str
    breadcrumbs: List[str] = field(default_factory=list)
    current_id: Optional[str] = None
    children: List[LibraryItem] = field(default_factory=list)
    failed: bool = False

    @property
    def done(self) -> bool:
        return self.failed or not self.remaining

    def step(self) -> None:
        """Navigate into the next parent id."""
        target = self.remaining.pop(0)
        try:
            children = self.browser.get_children(target)
        except UnknownLibraryItem:
            self.browser.logger.warning("Navigation stopped at unknown item %s", target)
            self.failed = True
            return
        if self.current_id is not None:
            self.breadcrumbs.append(self.current_id)
        self.current_id = target
        self.children = children

    def result(self) -> NavigationResult:
        focus_index = None
        if not self.failed:
            for index, child in enumerate(self.children):
                if child.media_id == self.focus_id:
                    focus_index = index
                    break
        return NavigationResult(
            breadcrumbs=list(self.breadcrumbs),
            current_id=self.current_id,
            children=list(self.children),
            focus_index=focus_index,
        )

    def run(self) -> NavigationResult:
        """Run every remaining step on the calling thread."""
        while not self.done:
            self.step()
        return self.result()

    def run_async(
        self,
        runner: BackgroundRunner,
        on_complete: Callable[[NavigationResult], Any],
        on_error: Optional[Callable[[Exception], Any]] = None,
    ) -> None:
        """
        Run steps one at a time on the worker.

        on_complete (or on_error, if a step raises) runs on the control thread.
        Without on_error the exception propagates to the dispatcher.
        """
        if self.done:
            runner.dispatcher.post(lambda: on_complete(self.result()))
            return

        def continue_after(future):
            if future.cancelled():
                return
            try:
                future.result()
            except Exception as e:
                if on_error is None:
                    raise
                on_error(e)
                return
            self.run_async(runner, on_complete, on_error)

        runner.submit(self.step, continue_after)
