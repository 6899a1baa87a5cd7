"""Client-side feature selection and export.

The viewer keeps one ViewerSession per map view. The session owns the
loaded FeatureCollection, its property key union and the SelectionStore;
clicks, select-all, deselect-all and rectangle selection all go through the
command set in ``featuremap.viewer.commands``.

Example:
    Load a collection and export a rectangle selection:
        >>> from featuremap.viewer import commands, session
        >>> view = session.ViewerSession()
        >>> view.dispatch(commands.Load(raw_geojson))
        >>> view.dispatch(commands.RectangleSelect((15.9, 45.7, 16.1, 45.9)))
        >>> view.dispatch(commands.ExportCSV())
"""
