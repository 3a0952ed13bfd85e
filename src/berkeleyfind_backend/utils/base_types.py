import typing

UserId = typing.NewType("UserId", str)
AssetPublicId = typing.NewType("AssetPublicId", str)
AssetUrl = typing.NewType("AssetUrl", str)
